#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Base classes for reader and writer options.

Options are frozen dataclasses. Modified copies are produced with
``create_updated`` so that an options object handed to a running job can
never change underneath it.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Mixin providing frozen dataclass cloning capabilities."""

    def create_updated(self, **kwargs: Any) -> Self:
        """Create a new instance with updated field values.

        Parameters
        ----------
        **kwargs : Any
            Field names and their new values

        Returns
        -------
        Self
            New instance with specified fields updated

        """
        return replace(self, **kwargs)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> Self:
        """Build an instance from a configuration mapping.

        Keys may use dashes or underscores. Unknown keys are rejected.

        Parameters
        ----------
        values : Mapping[str, Any]
            Configuration values, typically loaded from a config file

        Returns
        -------
        Self
            New options instance

        Raises
        ------
        ValueError
            If a key does not name an option field

        """
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = key.replace("-", "_")
            if name not in known:
                raise ValueError(f"Unknown option for {cls.__name__}: {key}")
            kwargs[name] = value
        return cls(**kwargs)
