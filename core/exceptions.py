"""
Custom exceptions

All roster and session errors live here so the API layer can map them in one
consistent way.
"""


class RosterException(Exception):
    """Base class for every roster/session error"""
    pass


# ============ Input errors ============

class ValidationError(RosterException):
    """A required field is missing or invalid (e.g. empty name)"""
    pass


# ============ Lookup errors ============

class NotFound(RosterException):
    """A record does not exist (or was deleted concurrently)"""
    pass


class ClassroomNotFound(NotFound):
    """Classroom does not exist"""
    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Classroom {identifier} not found")


class StudentNotFound(NotFound):
    """Student does not exist"""
    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(f"Student {student_id} not found")


# ============ Consistency errors ============

class DuplicateSectionError(RosterException):
    """Another classroom already uses this section (case-insensitive)"""
    def __init__(self, section):
        self.section = section
        super().__init__(f"Section '{section}' already exists")


# ============ Storage errors ============

class StoreUnavailable(RosterException):
    """Transport or storage failure; not retried automatically"""
    pass


# ============ Session errors ============

class EditNotAllowed(RosterException):
    """Editing a student while a selection run is spinning"""
    pass


class SessionNotFound(RosterException):
    """No session has been opened for this section"""
    def __init__(self, section):
        self.section = section
        super().__init__(f"No session opened for section '{section}'")
