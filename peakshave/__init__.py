from . import (
    canon,
    exceptions,
    types,
    config,
    timestamps,
    ingest,
    validate,
    normalize,
    transform,
    events,
    quality,
    catalog,
    sizing,
    scenario,
    analysis,
    formats,
)

__all__ = [
    "canon",
    "exceptions",
    "types",
    "config",
    "timestamps",
    "ingest",
    "validate",
    "normalize",
    "transform",
    "events",
    "quality",
    "catalog",
    "sizing",
    "scenario",
    "analysis",
    "formats",
]
