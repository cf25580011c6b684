class AnaLogError(Exception):
    """
    Base class for all domain errors raised by the filter engine.
    """


class UnknownFieldError(AnaLogError):
    """
    A condition references a field that is not in the field registry,
    e.g. a persisted condition written before the field was removed.
    """

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unknown filter field '{field}'")


class InvalidConditionValueError(AnaLogError):
    """
    Raised while constructing a condition: empty field, operator outside the
    allowed set, or an enum value that is not one of the options.
    """

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ImportFormatError(AnaLogError):
    """
    The backup document could not be decoded. Nothing has been written.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__("Invalid import format")


class StoreTransactionError(AnaLogError):
    """
    A multi-row write failed and its transaction was rolled back.
    The store error is kept untouched on `original`.
    """

    def __init__(self, operation: str, original: Exception):
        self.operation = operation
        self.original = original
        super().__init__(f"{operation} failed: {original}")


class FilterNotFoundError(AnaLogError):
    def __init__(self, filter_id: int):
        self.filter_id = filter_id
        super().__init__(f"Filter {filter_id} not found")


class ProcedureNotFoundError(AnaLogError):
    def __init__(self, case_number: str):
        self.case_number = case_number
        super().__init__(f"Procedure '{case_number}' not found")
