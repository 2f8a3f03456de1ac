#!/usr/bin/env python3
"""
Entity Metadata Validator — builds every entity's field registry.

Usage:
  python scripts/validate_metadata.py            # all entities
  python scripts/validate_metadata.py countries  # selected entities
  # exit code 0: all registries build, exit code 1: errors found
"""

import sys

from formdesk_core import ConfigurationError
from formdesk.models import ENTITIES, LOOKUP_SOURCES


def validate_entity(entity):
    """Return (errors, warnings) for one entity definition."""
    errors, warnings = [], []
    try:
        registry = entity.registry()
    except ConfigurationError as e:
        return [str(e)], warnings

    if not registry:
        warnings.append("no editable fields")
    if all(fdef.skip_on_submit for fdef in registry.values()):
        warnings.append("every field is skipped on submit")
    for name, fdef in registry.items():
        if fdef.source and fdef.source not in LOOKUP_SOURCES:
            errors.append(f"Field '{name}': unknown lookup source {fdef.source!r}")
        if fdef.control_type.is_lookup and fdef.final_value is None and not fdef.skip_on_submit:
            warnings.append(f"Field '{name}': lookup sent without a final_value transform")
    return errors, warnings


def main(argv=None):
    names = (argv if argv is not None else sys.argv[1:]) or list(ENTITIES)
    total_errors = total_warnings = 0

    for name in names:
        entity = ENTITIES.get(name)
        if entity is None:
            print(f"{name}:\n  ERROR: unknown entity")
            total_errors += 1
            continue
        errors, warnings = validate_entity(entity)
        print(f"{name}:")
        for w in warnings:
            print(f"  WARNING: {w}")
        for e in errors:
            print(f"  ERROR: {e}")
        total_errors += len(errors)
        total_warnings += len(warnings)

    if total_errors:
        print(f"\n{total_errors} error(s), {total_warnings} warning(s)")
        return 1
    print(f"\nOK — {total_warnings} warning(s), 0 errors")
    return 0


if __name__ == '__main__':
    sys.exit(main())
