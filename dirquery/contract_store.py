from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from dirquery.resources import contracts_schemas_dir


@dataclass(frozen=True)
class SchemaRef:
    name: str
    path: Path
    uri: str
    schema: Dict[str, Any]


class ContractStore:
    """
    Loads `contracts/schemas/*.json` and provides validation helpers.

    Notes:
    - Schemas are registered under their $id (falling back to the file URI) so relative
      $ref such as "defs.schema.json#/$defs/maxDepth" resolve across files.
    """

    def __init__(self, schemas_dir: Path):
        self._schemas_dir = schemas_dir
        self._schemas: Dict[str, SchemaRef] = {}
        self._registry: Registry = Registry()

    @property
    def schemas_dir(self) -> Path:
        return self._schemas_dir

    def load(self) -> None:
        if not self._schemas_dir.exists():
            raise FileNotFoundError(str(self._schemas_dir))

        resources: List[Tuple[str, Resource]] = []
        for p in sorted(self._schemas_dir.glob("*.json")):
            schema = json.loads(p.read_text(encoding="utf-8"))
            schema_id = schema.get("$id")
            uri = schema_id if isinstance(schema_id, str) and schema_id else p.resolve().as_uri()
            self._schemas[p.name] = SchemaRef(name=p.name, path=p, uri=uri, schema=schema)
            resources.append((uri, Resource.from_contents(schema, default_specification=DRAFT202012)))
        self._registry = Registry().with_resources(resources)

        # Sanity: ensure defs exists when referenced
        if "defs.schema.json" not in self._schemas:
            raise FileNotFoundError("defs.schema.json is required in contracts/schemas/")

    def list_schema_names(self) -> List[str]:
        return sorted(self._schemas.keys())

    def _get(self, schema_name: str) -> SchemaRef:
        ref = self._schemas.get(schema_name)
        if ref is None:
            raise KeyError(schema_name)
        return ref

    def check_schemas(self) -> List[Tuple[str, str]]:
        """
        Returns a list of (schema_name, error_message) for invalid schemas.
        """
        errors: List[Tuple[str, str]] = []
        for name in self.list_schema_names():
            ref = self._get(name)
            try:
                jsonschema.Draft202012Validator.check_schema(ref.schema)
            except Exception as e:  # noqa: BLE001
                errors.append((name, repr(e)))
        return errors

    def validate(self, schema_name: str, instance: Any) -> List[str]:
        """
        Validates an instance and returns a list of error strings (empty means valid).
        """
        ref = self._get(schema_name)
        validator = jsonschema.Draft202012Validator(ref.schema, registry=self._registry)
        return [e.message for e in sorted(validator.iter_errors(instance), key=str)]

    def validate_json_file(self, schema_name: str, path: Path) -> List[str]:
        instance = json.loads(path.read_text(encoding="utf-8"))
        return self.validate(schema_name, instance)


_CORE_CONTRACTS: Optional[ContractStore] = None


def core_contracts() -> ContractStore:
    global _CORE_CONTRACTS
    if _CORE_CONTRACTS is None:
        store = ContractStore(contracts_schemas_dir())
        store.load()
        _CORE_CONTRACTS = store
    return _CORE_CONTRACTS
