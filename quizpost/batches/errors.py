class BatchError(Exception):
    pass


class BatchNotFoundError(BatchError):
    pass


class BatchValidationError(BatchError):
    pass


class BatchTemplatesNotFoundError(BatchError):
    pass


class BatchNotCancellableError(BatchError):
    pass


class BatchNotFinalizableError(BatchError):
    pass
