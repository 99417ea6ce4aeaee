"""Operator plugin system: hook specs, registry, base classes, built-ins.

Import patterns:
    from augur.plugins.manager import OperatorRegistry
    from augur.plugins.base import BaseOperator
    from augur.plugins.hookspecs import hookimpl
"""
