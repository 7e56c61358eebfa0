"""Rebuild compound (dynamic-list) options from the flat keys of their section."""

import logging
from typing import TYPE_CHECKING, Dict, List

from wcm.core.values import is_parsable

if TYPE_CHECKING:
    from wcm.shared.config_store import CompoundOption, ConfigStore, Section

logger = logging.getLogger(__name__)


def _suffix_order(suffix: str):
    if suffix.isascii() and suffix.isdigit():
        return (0, int(suffix), suffix)
    return (1, 0, suffix)


def update_compound_from_section(compound: "CompoundOption", section: "Section") -> int:
    """
    Recompute the rows of ``compound`` from the non-schema keys of ``section``.
    A key matching the first entry's prefix starts a row keyed by the rest of
    the key; keys matching a later entry only fill in an existing row. Keys
    whose value does not parse under the entry's type are skipped, and rows
    missing any field are dropped. Numeric suffixes come first, by value.
    Args:
        compound: The compound option to rebuild in place.
        section: The section holding the flat keys.
    Returns:
        The number of rows kept.
    """
    if not compound.entries:
        compound.rows = []
        return 0
    width = len(compound.entries) + 1
    rows: Dict[str, List[str]] = {}
    flat = [option for option in section.registered_options() if not option.schema]
    for position, entry in enumerate(compound.entries):
        for option in flat:
            if not option.name.startswith(entry.prefix):
                continue
            if not is_parsable(entry.value_type, option.value):
                logger.debug(
                    f"Skipping {section.name}/{option.name}: not a valid {entry.value_type.value}"
                )
                continue
            suffix = option.name[len(entry.prefix) :]
            if position == 0:
                rows[suffix] = [suffix, option.value]
            elif suffix in rows and len(rows[suffix]) == position + 1:
                rows[suffix].append(option.value)
    order = sorted(rows, key=_suffix_order)
    compound.rows = [rows[suffix] for suffix in order if len(rows[suffix]) == width]
    dropped = len(rows) - len(compound.rows)
    if dropped:
        logger.debug(f"Dropped {dropped} incomplete row(s) of {section.name}/{compound.name}")
    return len(compound.rows)


def update_compounds(store: "ConfigStore") -> None:
    """Rebuild every compound option of every section in ``store``."""
    for section in store.sections():
        for compound in section.compounds():
            update_compound_from_section(compound, section)
