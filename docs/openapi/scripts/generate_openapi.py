"""Generate and persist OpenAPI artifacts for MadChef webservice."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from madchef.webservice.main import app


def main(outdir: str = "docs/openapi") -> None:
    target = Path(outdir)
    target.mkdir(parents=True, exist_ok=True)

    openapi_schema = app.openapi()

    json_path = target / "madchef-openapi.json"
    json_path.write_text(json.dumps(openapi_schema, indent=2), encoding="utf-8")

    yaml_path = target / "madchef-openapi.yaml"
    yaml_path.write_text(yaml.safe_dump(openapi_schema, sort_keys=False), encoding="utf-8")


if __name__ == "__main__":
    main()
