class SchedulingError(Exception):
    pass


class InvalidTimeSlotError(SchedulingError):
    pass


class NoAutoScheduleSlotsError(SchedulingError):
    pass


class AutoScheduleSlotNotFoundError(SchedulingError):
    pass


class AutoScheduleSlotConflictError(SchedulingError):
    pass


class NoAvailableSlotError(SchedulingError):
    pass
