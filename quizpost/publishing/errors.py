class PublishingError(Exception):
    pass


class PublishError(PublishingError):
    pass


class PublishingNotConfiguredError(PublishError):
    pass


class PostNotFoundError(PublishingError):
    pass


class PostConflictError(PublishingError):
    pass


class InvalidScheduleTimeError(PublishingError):
    pass


class PostNotRetryableError(PublishingError):
    pass


class RetryLimitExceededError(PublishingError):
    pass


class PostNotCancellableError(PublishingError):
    pass
