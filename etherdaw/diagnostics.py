"""Structured warnings collected during compilation.

Non-fatal problems (unknown references, unknown presets, bad tokens inside an
otherwise usable pattern) are recorded here instead of interrupting the run.
The compiler returns the collected list alongside its timeline so callers can
decide whether to accept the result.
"""

import dataclasses
import logging
import typing


logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"
INFO = "info"

SEVERITIES = (ERROR, WARNING, INFO)


@dataclasses.dataclass(frozen=True)
class Diagnostic:

	"""
	One collected problem.

	Attributes:
		severity: ``"error"``, ``"warning"`` or ``"info"``.
		message: Human-readable description.
		source: Where it came from (pattern, section or track name), if known.
	"""

	severity: str
	message: str
	source: typing.Optional[str] = None

	def __post_init__ (self) -> None:

		if self.severity not in SEVERITIES:
			raise ValueError(f"Unknown severity: {self.severity!r}")


	def __str__ (self) -> str:

		return self.message


class Diagnostics:

	"""
	An append-only collector of ``Diagnostic`` records.

	Example:
		```python
		diagnostics = Diagnostics()
		diagnostics.warn('Pattern "bass" not found', source="verse")
		[str(d) for d in diagnostics]  # ['Pattern "bass" not found']
		```
	"""

	def __init__ (self) -> None:

		self.items: typing.List[Diagnostic] = []


	def add (self, severity: str, message: str, source: typing.Optional[str] = None) -> Diagnostic:

		"""Record a diagnostic and return it."""

		diagnostic = Diagnostic(severity=severity, message=message, source=source)
		self.items.append(diagnostic)
		logger.debug(f"{severity}: {message}")

		return diagnostic


	def warn (self, message: str, source: typing.Optional[str] = None) -> Diagnostic:

		"""Record a warning."""

		return self.add(WARNING, message, source)


	def error (self, message: str, source: typing.Optional[str] = None) -> Diagnostic:

		"""Record an error. Errors are still non-fatal."""

		return self.add(ERROR, message, source)


	def extend (self, other: typing.Iterable[Diagnostic], unique: bool = False) -> None:

		"""Append diagnostics from another collector; ``unique`` skips ones already present."""

		for diagnostic in other:
			if unique and diagnostic in self.items:
				continue
			self.items.append(diagnostic)


	def messages (self, severity: typing.Optional[str] = None) -> typing.List[str]:

		"""Return the messages, optionally only those of one severity."""

		return [d.message for d in self.items if severity is None or d.severity == severity]


	def has_errors (self) -> bool:

		return any(d.severity == ERROR for d in self.items)


	def __iter__ (self) -> typing.Iterator[Diagnostic]:

		return iter(self.items)


	def __len__ (self) -> int:

		return len(self.items)
