"""Recoverable errors raised by the annotation layer.

None of these are fatal: the operation that raised is rejected and the
field collection is left as it was.
"""


class AnnotationError(Exception):
    pass


class InvalidMutation(AnnotationError):
    """A patch tried to change a frozen attribute or set an ill-typed value."""


class FieldNotFound(AnnotationError):
    def __init__(self, field_id: str):
        super().__init__(f"field {field_id} not found")
        self.field_id = field_id


class EmptyCapture(AnnotationError):
    def __init__(self, message: str = "nothing has been drawn or typed"):
        super().__init__(message)
