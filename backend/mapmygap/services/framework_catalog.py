"""Framework catalog: serves compliance controls from the bundled markdown files.

Each framework lives in ``mapmygap/catalog/<framework_id>.md``::

    # <framework display name>

    <framework description>

    ## <category name>

    <category description>

    | ID | Control | Recommendation |
    |----|---------|----------------|
    | AC-1 | Access Control Policy and Procedures | Develop ... |

The catalog is parsed once and is immutable afterwards.
"""

import logging
import re
from pathlib import Path
from typing import Iterator, Optional

from mapmygap.errors import UnsupportedFrameworkError
from mapmygap.models.framework import Category, Control, Framework, FrameworkId

logger = logging.getLogger(__name__)

CATALOG_DIR = Path(__file__).resolve().parents[1] / "catalog"

_TITLE_RE = re.compile(r"^# (.+?)\s*$")
_SECTION_RE = re.compile(r"^## (.+?)\s*$")
_ROW_RE = re.compile(r"^\|\s*(.*?)\s*\|\s*(.*?)\s*\|\s*(.*?)\s*\|$")


def _is_header_row(cells: tuple[str, str, str]) -> bool:
    first = cells[0]
    return first.upper() == "ID" or first.replace("-", "").replace(":", "") == ""


def parse_framework_markdown(framework_id: FrameworkId, text: str) -> Framework:
    """Parse one catalog markdown file into a Framework."""
    name = framework_id.value
    description = ""
    categories: list[Category] = []

    current_name: Optional[str] = None
    current_description = ""
    current_controls: list[Control] = []

    def _flush() -> None:
        if current_name is not None:
            categories.append(
                Category(
                    name=current_name,
                    description=current_description,
                    controls=tuple(current_controls),
                )
            )

    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        title_match = _TITLE_RE.match(stripped)
        if title_match:
            name = title_match.group(1)
            continue

        sec_match = _SECTION_RE.match(stripped)
        if sec_match:
            _flush()
            current_name = sec_match.group(1)
            current_description = ""
            current_controls = []
            continue

        row_match = _ROW_RE.match(stripped)
        if row_match:
            if current_name is None or _is_header_row(row_match.groups()):
                continue
            cid, control, recommendation = row_match.groups()
            current_controls.append(
                Control(id=cid, control=control, recommendation=recommendation)
            )
            continue

        # First plain line after a heading is its description
        if current_name is None:
            if not description:
                description = stripped
        elif not current_description:
            current_description = stripped

    _flush()
    return Framework(
        id=framework_id,
        name=name,
        description=description,
        categories=tuple(categories),
    )


class FrameworkCatalog:
    """Immutable lookup from framework identifier to Framework."""

    def __init__(self, frameworks: dict[FrameworkId, Framework]) -> None:
        self._frameworks = dict(frameworks)

    @classmethod
    def from_directory(cls, directory: Path = CATALOG_DIR) -> "FrameworkCatalog":
        """Load every supported framework from ``directory``."""
        frameworks: dict[FrameworkId, Framework] = {}
        for framework_id in FrameworkId:
            path = directory / f"{framework_id.value.lower()}.md"
            if not path.exists():
                logger.warning(f"Catalog file missing for {framework_id.value}: {path}")
                continue
            framework = parse_framework_markdown(
                framework_id, path.read_text(encoding="utf-8")
            )
            frameworks[framework_id] = framework
            logger.info(
                f"Loaded {framework_id.value}: {len(framework.categories)} categories, "
                f"{framework.control_count} controls"
            )
        return cls(frameworks)

    def __contains__(self, framework_id: object) -> bool:
        try:
            return FrameworkId(framework_id) in self._frameworks
        except ValueError:
            return False

    def __iter__(self) -> Iterator[Framework]:
        return iter(self._frameworks.values())

    def __len__(self) -> int:
        return len(self._frameworks)

    @property
    def ids(self) -> list[str]:
        return [f.value for f in self._frameworks]

    def get(self, framework_id: str) -> Framework:
        """Look up a framework.

        Raises:
            UnsupportedFrameworkError: If the identifier is not in the catalog.
        """
        try:
            return self._frameworks[FrameworkId(framework_id)]
        except (ValueError, KeyError):
            raise UnsupportedFrameworkError(str(framework_id), self.ids) from None

    def select_categories(
        self, framework_id: str, selected: Optional[list[str]] = None
    ) -> tuple[Category, ...]:
        """Return the categories matching ``selected``.

        A selection matches a category by its '(XX)' abbreviation, by a
        substring of its name, or by the id prefix of its controls. An empty
        selection, or one that matches nothing, returns every category.
        """
        framework = self.get(framework_id)
        wanted = [s.strip().upper() for s in (selected or []) if s and s.strip()]
        if not wanted:
            return framework.categories

        matched = tuple(
            category
            for category in framework.categories
            if any(_category_matches(category, s) for s in wanted)
        )
        if not matched:
            logger.warning(
                f"No {framework.id.value} categories matched {wanted}; using all"
            )
            return framework.categories
        return matched


def _category_matches(category: Category, selection: str) -> bool:
    name = category.name.upper()
    if f"({selection})" in name:
        return True
    if selection in name:
        return True
    return any(c.id.upper().startswith(selection + ".") for c in category.controls)


_catalog: FrameworkCatalog | None = None


def get_framework_catalog() -> FrameworkCatalog:
    """Get the process-wide catalog (parsed on first use)."""
    global _catalog
    if _catalog is None:
        _catalog = FrameworkCatalog.from_directory()
    return _catalog


def reset_framework_catalog() -> None:
    """Reset catalog for testing."""
    global _catalog
    _catalog = None
