"""Load schema and policy definitions from YAML files.

Layout under the definitions path:

    schemas/*.yaml   one schema per file
    policies/*.yaml  one policy per file

Schema file:

    schema: Book
    fields:
      - name: title
        type: string
        required: true
        transforms: [trim, notEmpty, {maxLength: 200}]
      - name: author
        schema: Author        # resolved lazily, any file order works
      - name: tags
        type: string
        many: true
        default: []

Policy file:

    policy: createBook
    rule:
      or:
        - isAdmin
        - and: [isUser, hasEnoughQuota]
      message: you cannot create books

Transforms and predicates are looked up in their registries while loading,
so they must be registered first.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from policyforge.auth.policy import Policy, as_policy
from policyforge.errors import SchemaDefinitionError
from policyforge.validation.registry import TransformRegistry
from policyforge.validation.schema import ObjectValidator
from policyforge.validation.types import UNSET, FieldSpec, Lazy, Step
from policyforge.validation.value import ValueValidator

logger = logging.getLogger(__name__)


class DefinitionLoader:
    """Loads schemas and policies from YAML files or plain dicts."""

    def __init__(self, definitions_path: Path | None = None):
        self.definitions_path = definitions_path
        self.schemas: dict[str, ObjectValidator] = {}
        self.policies: dict[str, Policy] = {}
        self._references: dict[str, set[str]] = {}

    def load_all(self) -> None:
        """Load every schema and policy file, then check schema references."""
        if self.definitions_path is None:
            raise ValueError("DefinitionLoader has no definitions path")
        self._load_dir("schemas", "schema", self.add_schema)
        self._load_dir("policies", "policy", self.add_policy)
        self._validate_references()

    def _load_dir(self, dirname: str, marker: str, add) -> None:
        path = self.definitions_path / dirname
        if not path.exists():
            return

        for yaml_file in sorted(path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
            if data and marker in data:
                add(data)
            else:
                logger.warning("Skipping %s: no '%s' key", yaml_file, marker)

    def _validate_references(self) -> None:
        for schema_name, references in self._references.items():
            for ref in sorted(references):
                if ref not in self.schemas:
                    raise SchemaDefinitionError(
                        f"Schema '{schema_name}' references unknown schema '{ref}'"
                    )

    # -------------------------------------------------------------------------
    # Schemas
    # -------------------------------------------------------------------------

    def add_schema(self, data: dict[str, Any]) -> ObjectValidator:
        """Build an ObjectValidator from a schema definition and store it."""
        name = data["schema"]
        if name in self.schemas:
            raise SchemaDefinitionError(f"Duplicate schema '{name}'")

        self._references[name] = set()
        fields: dict[str, Step] = {}
        for field_data in data.get("fields") or []:
            field_name = field_data["name"]
            if field_name in fields:
                raise SchemaDefinitionError(
                    f"Schema '{name}' declares field '{field_name}' twice"
                )
            fields[field_name] = self._resolve_field(name, field_data)

        schema = ObjectValidator(fields, type_name=data.get("typeName", name))
        self.schemas[name] = schema
        return schema

    def _resolve_field(self, schema_name: str, data: dict[str, Any]) -> ValueValidator:
        steps: list[Step] = []
        type_name = data.get("type")

        ref = data.get("schema")
        if ref:
            self._references[schema_name].add(ref)
            steps.append(Lazy(lambda ref=ref: self.schema(ref)))
            type_name = type_name or ref

        for entry in data.get("transforms") or []:
            steps.append(self._resolve_transform(schema_name, entry))

        spec = FieldSpec(
            type=type_name,
            required=data.get("required", False),
            allow_null=data.get("allowNull", False),
            read_only=data.get("readOnly", False),
            default=data["default"] if "default" in data else UNSET,
            many=data.get("many", False),
            transform=steps,
        )
        return ValueValidator(spec)

    def _resolve_transform(self, schema_name: str, entry: Any) -> Step:
        if isinstance(entry, str):
            return TransformRegistry.create(entry)
        if isinstance(entry, dict) and len(entry) == 1:
            [(name, params)] = entry.items()
            return TransformRegistry.create(name, params)
        raise SchemaDefinitionError(
            f"Schema '{schema_name}' has an invalid transform entry: {entry!r}"
        )

    def schema(self, name: str) -> ObjectValidator:
        """Get a loaded schema by name.

        Raises:
            SchemaDefinitionError: If no schema with that name was loaded
        """
        if name not in self.schemas:
            raise SchemaDefinitionError(f"Schema '{name}' is not defined")
        return self.schemas[name]

    # -------------------------------------------------------------------------
    # Policies
    # -------------------------------------------------------------------------

    def add_policy(self, data: dict[str, Any]) -> Policy:
        """Build a Policy from a policy definition and store it."""
        name = data["policy"]
        if "rule" not in data:
            raise SchemaDefinitionError(f"Policy '{name}' has no rule")
        policy = as_policy(data["rule"])
        self.policies[name] = policy
        return policy

    def policy(self, name: str) -> Policy:
        if name not in self.policies:
            raise SchemaDefinitionError(f"Policy '{name}' is not defined")
        return self.policies[name]
