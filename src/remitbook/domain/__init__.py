"""Domain layer for remitbook."""

import importlib

# Import services lazily to avoid circular dependencies: the database layer
# imports remitbook.domain.entities, and the services import the database layer.
_SERVICES = {
    "ChartOfAccountsService": "remitbook.domain.account",
    "LedgerService": "remitbook.domain.journal",
    "ClientAccountResolver": "remitbook.domain.client",
    "ClientService": "remitbook.domain.client",
    "LoggingNotifier": "remitbook.domain.reconciliation",
    "ReconciliationService": "remitbook.domain.reconciliation",
    "SuspenseAccountResolver": "remitbook.domain.reconciliation",
    "PeriodClosingService": "remitbook.domain.period",
    "RecordService": "remitbook.domain.records",
    "ClientMatcher": "remitbook.domain.matching",
    "SmsParser": "remitbook.domain.sms_parser",
    "parse_sms": "remitbook.domain.sms_parser",
    "IngestionService": "remitbook.domain.ingestion",
}


def __getattr__(name):
    module = _SERVICES.get(name)
    if module is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    return getattr(importlib.import_module(module), name)


__all__ = list(_SERVICES)
