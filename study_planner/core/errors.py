# study_planner/core/errors.py
"""Error kinds surfaced by the planner core.

None of them is retried inside the core. StorageError is the only kind the
store layer raises; best-effort cleanup paths catch it and move on, primary
reads and writes let it propagate.
"""


class StudyPlannerError(Exception):
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(StudyPlannerError):
    code = "VALIDATION_ERROR"


class NotFoundError(StudyPlannerError):
    code = "NOT_FOUND"


class ForbiddenError(StudyPlannerError):
    # Message stays generic: never echo the owner's id or document.
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class StorageError(StudyPlannerError):
    code = "STORAGE_ERROR"
