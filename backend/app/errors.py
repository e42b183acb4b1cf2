# backend/app/errors.py


class FieldSurveyError(Exception):
    """Base class for errors raised by the import and assignment pipelines."""


class UnsupportedFormat(FieldSurveyError):
    """No geometry parser matches the uploaded file(s)."""


class MalformedInput(FieldSurveyError):
    """Feature text or an uploaded file could not be parsed."""


class DuplicateName(FieldSurveyError):
    def __init__(self, name: str):
        super().__init__(f"layer name already exists: {name}")
        self.name = name


class MissingLabelProperty(FieldSurveyError):
    def __init__(self, label_field: str):
        super().__init__(f"feature has no property {label_field!r}")
        self.label_field = label_field


class NotFound(FieldSurveyError):
    pass


class InvalidTransition(FieldSurveyError):
    """Assignment state change not allowed by the lifecycle."""
