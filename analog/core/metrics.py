from prometheus_client import Counter

# Conditions dropped by the predicate compiler, by reason
# (unknown_field, missing_value, kind_mismatch, unsupported_operator)
CONDITIONS_SKIPPED = Counter(
    "analog_conditions_skipped_total",
    "Filter conditions skipped while compiling a predicate",
    ["reason"],
)

# Backup imports by outcome (success, rejected, failed)
IMPORTS = Counter(
    "analog_imports_total",
    "Backup documents processed by the import codec",
    ["outcome"],
)
