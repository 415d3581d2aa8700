"""
Transaction Naming

Turns a working transaction name into its frozen metric name.
"""

from apmcore.config.reply import ConnectReply, apply_rules

WEB_METRIC_PREFIX = "WebTransaction/Python"
BACKGROUND_METRIC_PREFIX = "OtherTransaction/Python"


def create_full_txn_name(name: str, reply: ConnectReply, is_web: bool) -> str:
    """
    Build the full metric name for a transaction.

    Returns the empty string when a rule ignores the transaction.
    """
    after_url_rules = ""
    if name:
        after_url_rules = apply_rules(reply.url_rules, name)
        if not after_url_rules:
            return ""

    prefix = WEB_METRIC_PREFIX if is_web else BACKGROUND_METRIC_PREFIX
    if after_url_rules.startswith("/"):
        before_name_rules = prefix + after_url_rules
    else:
        before_name_rules = f"{prefix}/{after_url_rules}"

    return apply_rules(reply.transaction_name_rules, before_name_rules)
