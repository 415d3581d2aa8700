"""
Test Suite Initialization

apmcore test package.
"""
