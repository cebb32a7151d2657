"""
Structural validation of module documents and compiled contracts.

Two gates guard every module load:
- the raw XML document is checked against the module XSD before parsing
- the compiled contract is checked against the contract JSON Schema before
  it is persisted
"""

import json
from functools import cached_property
from pathlib import Path
from typing import Any

from jsonschema.protocols import Validator
from jsonschema.validators import validator_for
from lxml import etree

from collectory.config import get_settings
from collectory.modules.errors import ContractSchemaError, DocumentSchemaError
from collectory.observability import get_logger, with_log_context

logger = get_logger(__name__)


def secure_xml_parser(schema: etree.XMLSchema | None = None) -> etree.XMLParser:
    """XML parser with entity expansion and network access disabled."""
    return etree.XMLParser(
        schema=schema,
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        huge_tree=False,
    )


class DocumentSchemaValidator:
    """Validates raw module XML against the module XSD."""

    def __init__(self, schema_path: Path | None = None):
        self.schema_path = Path(schema_path or get_settings().module_schema_path)

    @cached_property
    def schema(self) -> etree.XMLSchema:
        doc = etree.parse(str(self.schema_path), secure_xml_parser())
        return etree.XMLSchema(doc)

    def validate(self, raw: str, source_name: str) -> None:
        """
        Validate a module document.

        Args:
            raw: Raw XML text
            source_name: File or upload name used in error messages

        Raises:
            DocumentSchemaError: If the document is not well-formed or
                violates the schema
        """
        try:
            doc = etree.fromstring(raw.encode("utf-8"), secure_xml_parser())
        except etree.XMLSyntaxError as e:
            raise DocumentSchemaError(source_name, [f"not well-formed: {e}"]) from e

        if self.schema.validate(doc):
            return

        messages = [
            f"line {entry.line}: {entry.message}" for entry in self.schema.error_log
        ]
        logger.info(
            "Module document rejected by XSD",
            extra=with_log_context(source_name=source_name, error_count=len(messages)),
        )
        raise DocumentSchemaError(source_name, messages)


class ContractSchemaValidator:
    """Validates a compiled contract (JSON form) against the contract JSON Schema."""

    def __init__(self, schema_path: Path | None = None):
        self.schema_path = Path(schema_path or get_settings().contract_schema_path)

    @cached_property
    def schema(self) -> dict[str, Any]:
        with open(self.schema_path, encoding="utf-8") as f:
            return json.load(f)

    @cached_property
    def validator(self) -> Validator:
        cls = validator_for(self.schema)
        cls.check_schema(self.schema)
        return cls(self.schema)

    def validate(self, contract_json: dict[str, Any], source_name: str) -> None:
        """
        Validate a contract.

        Raises:
            ContractSchemaError: With every violation, sorted for stable output
        """
        messages = sorted(
            f"{error.json_path}: {error.message}"
            for error in self.validator.iter_errors(contract_json)
        )
        if messages:
            raise ContractSchemaError(source_name, messages)
