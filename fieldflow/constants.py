"""Shared constants for the automation engine."""

WORKFLOW_STATUSES = "workflow_statuses"
WORKFLOW_TRIGGERS = "workflow_triggers"
WORK_ORDERS = "work_orders"
TIME_ENTRIES = "time_entries"
INVOICES = "invoices"
NOTIFICATIONS = "notifications"
AUTOMATION_RUNS = "automation_runs"

DEFAULT_TOPIC = "fieldflow.automation"
DEFAULT_LABOR_RATE = 50.0
DEFAULT_INVOICE_DUE_DAYS = 30

# Recorded as ``created_by`` on documents produced by automation.
SYSTEM_ACTOR = "system_workflow"
