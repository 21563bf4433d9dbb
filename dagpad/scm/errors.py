"""Exception types raised by the SCM engine."""


class SCMError(ValueError):
    """Base class for every error raised by the SCM engine."""


class ParseError(SCMError):
    """The SCM text or one of its expressions cannot be parsed."""


class CycleError(SCMError):
    """The dependency graph is not a DAG."""


class EvaluationError(SCMError):
    """Evaluating one variable's expression failed.

    Attributes:
        variable: Name of the variable being evaluated.
        source: Right-hand side text of the failing equation.
    """

    def __init__(self, message: str, variable: str, source: str) -> None:
        super().__init__(message)
        self.variable = variable
        self.source = source


class MutationError(SCMError):
    """A text-level graph edit cannot be applied."""
