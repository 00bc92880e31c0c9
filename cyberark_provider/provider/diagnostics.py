"""Diagnostics collected while validating, planning and applying resources."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

ERROR = "error"
WARNING = "warning"


@dataclass
class Diagnostic:
    severity: str
    summary: str
    detail: str = ""
    address: Optional[str] = None

    def __str__(self) -> str:
        prefix = f"{self.address}: " if self.address else ""
        text = f"{self.severity.capitalize()}: {prefix}{self.summary}"
        if self.detail:
            text = f"{text}\n  {self.detail}"
        return text


@dataclass
class Diagnostics:
    """Ordered list of errors and warnings.

    Resources append to it instead of raising, so a single run can report
    every problem it found.
    """
    items: List[Diagnostic] = field(default_factory=list)

    def add_error(self, summary: str, detail: str = "", address: Optional[str] = None) -> None:
        self.items.append(Diagnostic(ERROR, summary, detail, address))

    def add_warning(self, summary: str, detail: str = "", address: Optional[str] = None) -> None:
        self.items.append(Diagnostic(WARNING, summary, detail, address))

    def extend(self, other: "Diagnostics", address: Optional[str] = None) -> None:
        for diag in other.items:
            if address and not diag.address:
                diag = Diagnostic(diag.severity, diag.summary, diag.detail, address)
            self.items.append(diag)

    def has_error(self) -> bool:
        return any(diag.severity == ERROR for diag in self.items)

    @property
    def errors(self) -> List[Diagnostic]:
        return [diag for diag in self.items if diag.severity == ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [diag for diag in self.items if diag.severity == WARNING]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
