"""
Connect Reply

Remote configuration returned by the collector when the application connects.
A reply is an immutable snapshot; reconnecting produces a new one.
"""

import re
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from apmcore.observability.logging import get_logger

logger = get_logger("apmcore.config")


@lru_cache(maxsize=256)
def _compile(expression: str) -> re.Pattern[str]:
    return re.compile(expression, re.IGNORECASE)


class MetricRule(BaseModel):
    """A single server-side naming rule."""

    model_config = ConfigDict(frozen=True)

    match_expression: str
    replacement: str = ""
    ignore: bool = False
    eval_order: int = 0
    terminate_chain: bool = True
    replace_all: bool = False

    @field_validator("match_expression")
    @classmethod
    def validate_match_expression(cls, v: str) -> str:
        """Reject expressions that do not compile."""
        try:
            _compile(v)
        except re.error as exc:
            raise ValueError(f"invalid match expression {v!r}: {exc}") from exc
        return v

    def apply(self, name: str) -> tuple[str, bool]:
        """
        Apply the rule to a name.

        Returns the resulting name and whether the rule matched. An ignore
        rule that matches returns the empty name.
        """
        pattern = _compile(self.match_expression)
        if not pattern.search(name):
            return name, False
        if self.ignore:
            return "", True
        count = 0 if self.replace_all else 1
        try:
            return pattern.sub(self.replacement, name, count=count), True
        except re.error:
            # Bad group reference in the replacement; leave the name alone
            return name, False


def apply_rules(rules: list[MetricRule], name: str) -> str:
    """Run a rule chain over a name in ascending eval order."""
    for rule in sorted(rules, key=lambda r: r.eval_order):
        name, matched = rule.apply(name)
        if matched and (name == "" or rule.terminate_chain):
            break
    return name


class ConnectReply(BaseModel):
    """
    Collector connect response.

    Defaults describe a collector that permits every kind of collection.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = ""
    entity_guid: str = ""

    # Apdex thresholds in seconds
    apdex_t: float = Field(default=0.5, gt=0)
    key_txn_apdex: dict[str, float] = Field(default_factory=dict)

    # Server-side collection permissions
    collect_errors: bool = True
    collect_error_events: bool = True
    collect_analytics_events: bool = True
    application_logging_enabled: bool = True

    # Naming
    url_rules: list[MetricRule] = Field(default_factory=list)
    transaction_name_rules: list[MetricRule] = Field(default_factory=list)

    @field_validator("url_rules", "transaction_name_rules", mode="before")
    @classmethod
    def drop_invalid_rules(cls, v: Any) -> Any:
        """Skip rules the collector sent with an unusable expression."""
        if not isinstance(v, list):
            return v
        rules = []
        for raw in v:
            if isinstance(raw, MetricRule):
                rules.append(raw)
                continue
            try:
                rules.append(MetricRule.model_validate(raw))
            except ValidationError as exc:
                logger.warning("dropping invalid metric rule", rule=raw, error=str(exc))
        return rules
