"""Base protocol for pipeline stages."""

from typing import Protocol, TypeVar

from studygen.core.exceptions import StudygenError
from studygen.core.types import Result

# Contravariant input (stages can accept supertypes), invariant output
T_In = TypeVar("T_In", contravariant=True)
T_Out = TypeVar("T_Out")
T_Error = TypeVar("T_Error", bound=StudygenError)


class BaseAsyncHandler(Protocol[T_In, T_Out, T_Error]):
    """Protocol for asynchronous pipeline stages.

    Each stage performs a single transformation of the request state and
    reports failure as a value rather than raising.
    """

    async def handle(self, command: T_In) -> Result[T_Out, T_Error]:
        """Process a request state.

        Args:
            command: The request state produced by the previous stage.

        Returns:
            A Result holding either the next request state or an error.
        """
        ...
