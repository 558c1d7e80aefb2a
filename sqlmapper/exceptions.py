from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "BindingError",
    "BuilderError",
    "ExecutorError",
    "ImproperConfigurationError",
    "IncompleteElementError",
    "MultipleResultsFoundError",
    "SQLMapperError",
    "wrap_exceptions",
)


class SQLMapperError(Exception):
    """Base exception class from which all sqlmapper exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLMapperError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class BindingError(SQLMapperError):
    """Mapper interface binding failed.

    Raised for unknown or duplicate mapper types, unresolvable statement ids,
    and unexpected failures while dispatching a mapper method.
    """


class BuilderError(SQLMapperError):
    """A template or statement declaration could not be built."""

    def __init__(self, message: Optional[str] = None) -> None:
        if message is None:
            message = "Issues building SQL template."
        super().__init__(message)


class IncompleteElementError(BuilderError):
    """A referenced element is not yet known.

    Not a permanent failure: the declaration may be retried once more
    documents have been parsed.
    """


class ExecutorError(SQLMapperError):
    """Statement execution could not be set up."""


class ImproperConfigurationError(SQLMapperError):
    """Improper Configuration error."""


class MultipleResultsFoundError(SQLMapperError):
    """A single database result was required but more than one were found."""


@contextmanager
def wrap_exceptions(
    error_type: "type[SQLMapperError]" = SQLMapperError,
    message: str = "An error occurred during the operation.",
    passthrough: "tuple[type[BaseException], ...]" = (),
) -> Generator[None, None, None]:
    """Re-raise unexpected failures as ``error_type``, keeping the original cause.

    Library errors and any exception type listed in ``passthrough`` are
    re-raised unchanged.
    """
    try:
        yield

    except SQLMapperError:
        raise
    except Exception as exc:
        if passthrough and isinstance(exc, passthrough):
            raise
        raise error_type(f"{message} Cause: {exc}") from exc
