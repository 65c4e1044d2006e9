class ScheduleInputError(ValueError):
    """
    Raised when task or dependency records cannot be turned into a schedule
    at all (unparseable dates, non-numeric hours, duplicate ids...).
    Cycles and dangling dependencies are not errors; they are reported in results.
    """
