class BookingError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

class InvalidInputError(BookingError):
    status_code = 400

class InvalidStateError(BookingError):
    status_code = 400

class NotFoundError(BookingError):
    status_code = 404

class NoEligibleDoctorError(NotFoundError):
    pass

class SlotFullyBookedError(BookingError):
    status_code = 409

    def __init__(self, message: str = "Slot fully booked across all doctors. Please choose another time."):
        super().__init__(message)

class SlotLockTimeout(Exception):
    """Waiting for a (doctor, slot start) lock took longer than allowed."""

    def __init__(self, key: str):
        super().__init__(f"timed out waiting for slot lock {key}")
        self.key = key
