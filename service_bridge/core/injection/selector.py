"""
Constructor selection.

Chooses the single constructor the injector invokes for a type.
"""

import logging
from typing import Any, Sequence

from ..domain.plan import ConstructorInfo
from ..exceptions import NoSuitableConstructorException

logger = logging.getLogger(__name__)


class ConstructorSelector:
    """
    Selects exactly one constructor from a scanned constructor set.

    A constructor carrying the injection marker always wins, which lets a type
    expose a canonical DI constructor next to overloads meant for other code.
    Otherwise the public constructor with the most parameters is chosen; ties
    go to the earliest one in declaration order (`__init__` first, then
    alternate constructors as declared), so builds are reproducible.
    """

    def select(self, target_type: Any, constructors: Sequence[ConstructorInfo]) -> ConstructorInfo:
        """
        Select the constructor to invoke.

        Args:
            target_type: Type the constructors belong to
            constructors: Scanned constructors with eligibility flags

        Returns:
            The selected constructor

        Raises:
            NoSuitableConstructorException: If no constructor is eligible
        """
        eligible = [c for c in constructors if c.eligible]
        if not eligible:
            raise NoSuitableConstructorException(target_type)

        marked = [c for c in eligible if c.marked]
        if len(marked) == 1:
            return marked[0]

        # max() keeps the first of several equal maxima
        selected = max(eligible, key=lambda c: c.parameter_count)
        logger.debug(
            f"Selected constructor {target_type.__qualname__}.{selected.name} "
            f"with {selected.parameter_count} parameter(s) out of {len(eligible)} candidate(s)")
        return selected
