

class InfluxPushError(Exception):
    pass


class InitializationError(InfluxPushError):
    pass


class RequestCreationError(InfluxPushError):
    pass


class SubmissionError(InfluxPushError):
    pass


class EncodingError(InfluxPushError, ValueError):
    pass
