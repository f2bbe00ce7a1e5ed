"""Exceptions raised by the expression engine.

Every error is a ``ValueError`` so callers that only care about "bad
expression" can keep catching ``ValueError``.
"""


class ExpressionError(ValueError):
    pass


class SourceError(ExpressionError):
    """An error tied to a position in the source text."""

    def __init__(self, message, line=1, column=1, text="", source_line=None):
        self.message = message
        self.line = line
        self.column = column
        self.text = text
        self.source_line = source_line
        super().__init__(self._format())

    def _format(self):
        report = f"{self.line}:{self.column}: {self.message}"
        if self.source_line is not None:
            report += f"\n{self.source_line}"
        return report


class LexError(SourceError):
    pass


class ParseError(SourceError):
    pass


class BuildError(ExpressionError):
    pass


class DifferentiationError(ExpressionError):
    pass


class OptimizationError(ExpressionError):
    pass


class EvaluationError(ExpressionError):
    pass
