"""Immutable catalog of named, parameterized SQL operations.

Callers never send SQL.  They name an operation by ``(domain, name)`` and
pass an argument bag; the catalog entry supplies the statement, the
positional order of its parameters, the shape of its result and the
validator that gates it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from equiptrack.registry.errors import CatalogError
from equiptrack.registry.validators import Rule, always


class ResultShape(StrEnum):
    MANY = "many"      # list of row dicts
    ONE = "one"        # row dict or None
    SCALAR = "scalar"  # first column of first row, or None
    WRITE = "write"    # WriteResult(inserted_id, rows_affected)


def count_placeholders(statement: str) -> int:
    """Count ``?`` placeholders that are not inside a quoted literal."""
    count = 0
    quote: str | None = None
    for ch in statement:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "?":
            count += 1
    return count


@dataclass(frozen=True)
class OperationSpec:
    """One catalog entry.

    *parameter_names* lists argument names in placeholder order; a name may
    repeat when the statement binds the same value twice.
    """

    domain: str
    name: str
    statement: str
    parameter_names: tuple[str, ...] = ()
    result_shape: ResultShape = ResultShape.MANY
    validate: Rule = always

    def __post_init__(self) -> None:
        placeholders = count_placeholders(self.statement)
        if placeholders != len(self.parameter_names):
            raise CatalogError(
                f"{self.key}: statement has {placeholders} placeholders but "
                f"{len(self.parameter_names)} parameter names"
            )

    @property
    def key(self) -> str:
        return f"{self.domain}.{self.name}"

    def bind(self, args: Mapping[str, Any]) -> tuple[Any, ...]:
        """Project *args* into positional parameters; absent names bind None."""
        return tuple(args.get(name) for name in self.parameter_names)


class Catalog(Mapping[tuple[str, str], OperationSpec]):
    """Read-only mapping of ``(domain, name)`` to :class:`OperationSpec`."""

    def __init__(self, specs: Mapping[tuple[str, str], OperationSpec]) -> None:
        self._specs = MappingProxyType(dict(specs))

    @classmethod
    def from_specs(cls, specs: Iterable[OperationSpec]) -> Catalog:
        by_key: dict[tuple[str, str], OperationSpec] = {}
        for spec in specs:
            key = (spec.domain, spec.name)
            if key in by_key:
                raise CatalogError(f"Duplicate operation {spec.key}")
            by_key[key] = spec
        return cls(by_key)

    def __getitem__(self, key: tuple[str, str]) -> OperationSpec:
        return self._specs[key]

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def lookup(self, domain: str, name: str) -> OperationSpec | None:
        return self._specs.get((domain, name))

    def domains(self) -> list[str]:
        return sorted({domain for domain, _ in self._specs})

    def operations(self, domain: str) -> list[OperationSpec]:
        return [spec for (d, _), spec in self._specs.items() if d == domain]
