"""Export JSON schemas of the oracle contracts (wire/camelCase form)."""

import json
import sys
from pathlib import Path

from pydantic import BaseModel

from tripsync.app.models import DiagnosticsRefresh, PatchIntent, TripReconstruction

CONTRACTS: dict[str, type[BaseModel]] = {
    "TripReconstruction": TripReconstruction,
    "PatchIntent": PatchIntent,
    "DiagnosticsRefresh": DiagnosticsRefresh,
}


def main(out_dir: str = "docs/schemas") -> list[Path]:
    """Export schemas to docs/schemas/ (or the given directory)."""
    schemas_dir = Path(out_dir)
    schemas_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for name, model in CONTRACTS.items():
        path = schemas_dir / f"{name}.schema.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(by_alias=True), f, indent=2)
        print(f"Exported {name} schema to {path}")
        written.append(path)
    return written


if __name__ == "__main__":
    main(*sys.argv[1:2])
