# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Functions and classes to load tabular model files and prepare them for deployment."""

import copy
import io
import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
from xml.sax.saxutils import quoteattr

import dpath

from ssas_cicd import constants
from ssas_cicd._common._exceptions import ModelFileError

logger = logging.getLogger(__name__)

ENGINE = f"{{{constants.XMLA_NAMESPACES['engine']}}}"


@dataclass
class TabularModel:
    """A tabular model definition read from a model file."""

    path: Path
    name: str
    database_id: str
    compatibility_level: int
    format: str
    definition: Union[dict, ET.Element] = field(repr=False)
    namespaces: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def is_tmsl(self) -> bool:
        """Whether the model is deployed with TMSL (JSON) rather than XMLA engine commands."""
        return self.format == "json"

    def with_database_name(self, database_name: str) -> "TabularModel":
        """
        Return a copy of the model renamed to the target database.

        Args:
            database_name: The name (and ID) the database is deployed as.
        """
        definition = copy.deepcopy(self.definition)
        if self.is_tmsl:
            definition["name"] = database_name
            if "id" in definition:
                definition["id"] = database_name
        else:
            for tag in ("ID", "Name"):
                element = definition.find(f"{ENGINE}{tag}")
                if element is None:
                    element = ET.SubElement(definition, f"{ENGINE}{tag}")
                element.text = database_name

        return TabularModel(
            self.path,
            database_name,
            database_name,
            self.compatibility_level,
            self.format,
            definition,
            dict(self.namespaces),
        )

    def serialize(self) -> str:
        """Serialize the definition as it is embedded in a deployment command."""
        if self.is_tmsl:
            return json.dumps(self.definition, indent=2)

        engine = constants.XMLA_NAMESPACES["engine"]
        for prefix, uri in self.namespaces.items():
            # ElementTree reserves ns<N> prefixes for its own use
            if prefix and uri != engine and not re.fullmatch(r"ns\d+", prefix):
                ET.register_namespace(prefix, uri)

        try:
            content = ET.tostring(self.definition, encoding="unicode", default_namespace=engine)
        except ValueError as e:
            msg = f"Unable to serialize model file '{self.path}'. {e}"
            raise ModelFileError(msg, logger) from e

        return _declare_namespaces(content, self.namespaces)


def load_model_file(model_file: Union[str, Path]) -> TabularModel:
    """
    Load a model file, either a JSON model.bim (compatibility level 1200 and above) or a legacy XML one.

    Args:
        model_file: Path to the model file.
    """
    path = Path(model_file)
    try:
        content = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        msg = f"Unable to read model file '{path}'. {e}"
        raise ModelFileError(msg, logger) from e

    if not content.strip():
        msg = f"Model file '{path}' is empty."
        raise ModelFileError(msg, logger)

    if content.lstrip().startswith("<"):
        return _load_xml_model(path, content)
    return _load_json_model(path, content)


def _load_json_model(path: Path, content: str) -> TabularModel:
    try:
        definition = json.loads(content)
    except json.JSONDecodeError as e:
        msg = f"Model file '{path}' is not valid JSON. {e}"
        raise ModelFileError(msg, logger) from e

    if not isinstance(definition, dict) or "model" not in definition:
        msg = f"Model file '{path}' does not contain a 'model' definition."
        raise ModelFileError(msg, logger)

    compatibility_level = int(definition.get("compatibilityLevel", constants.DEFAULT_JSON_COMPATIBILITY_LEVEL))
    name = definition.get("name") or path.stem
    database_id = definition.get("id") or name
    logger.debug(f"Loaded JSON model '{name}' with compatibility level {compatibility_level}")
    return TabularModel(path, name, database_id, compatibility_level, "json", definition)


def _load_xml_model(path: Path, content: str) -> TabularModel:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        msg = f"Model file '{path}' is not valid XML. {e}"
        raise ModelFileError(msg, logger) from e

    # Model files saved by older designers wrap the database in a Batch/Alter command
    database = root if root.tag == f"{ENGINE}Database" else root.find(f".//{ENGINE}Database")
    if database is None:
        msg = f"Model file '{path}' does not contain a Database definition."
        raise ModelFileError(msg, logger)

    level = database.findtext("ddl200:CompatibilityLevel", namespaces=constants.XMLA_NAMESPACES)
    compatibility_level = int(level) if level else constants.DEFAULT_XML_COMPATIBILITY_LEVEL
    name = database.findtext(f"{ENGINE}Name") or path.stem
    database_id = database.findtext(f"{ENGINE}ID") or name

    namespaces = {}
    for _, (prefix, uri) in ET.iterparse(io.StringIO(content), events=("start-ns",)):
        namespaces.setdefault(prefix, uri)

    logger.debug(f"Loaded XML model '{name}' (ID '{database_id}') with compatibility level {compatibility_level}")
    return TabularModel(path, name, database_id, compatibility_level, "xml", database, namespaces)


def _declare_namespaces(content: str, namespaces: dict[str, str]) -> str:
    """
    Add the prefixes of the model file that ElementTree left undeclared to the root element.

    ElementTree only declares prefixes used in element and attribute names, while ASSL also
    uses them in attribute values such as type="xs:string".
    """
    end = content.index(">")
    if content[end - 1] == "/":
        end -= 1

    declared = set(re.findall(r"xmlns:([^=\s]+)=", content[:end]))
    missing = "".join(
        f" xmlns:{prefix}={quoteattr(uri)}" for prefix, uri in namespaces.items() if prefix and prefix not in declared
    )
    return content[:end] + missing + content[end:]


def apply_data_source_overrides(model: TabularModel, overrides: Optional[list[dict]]) -> TabularModel:
    """
    Replace connection strings and credentials of the model's data sources.

    Args:
        model: The model to update, changed in place.
        overrides: Dicts with a 'name' and any of 'connection_string', 'user_id', 'password'.
    """
    for override in overrides or []:
        name = override.get("name")
        if not name:
            msg = "Data source override is missing a 'name'."
            raise ModelFileError(msg, logger)

        if model.is_tmsl:
            _override_json_data_source(model, name, override)
        else:
            _override_xml_data_source(model, name, override)

        logger.info(f"{constants.INDENT}Updated data source '{name}'")

    return model


def _override_json_data_source(model: TabularModel, name: str, override: dict) -> None:
    data_sources = dpath.get(model.definition, "model/dataSources", default=[])
    data_source = next((ds for ds in data_sources if ds.get("name", "").casefold() == name.casefold()), None)
    if data_source is None:
        msg = f"Data source '{name}' not found in model file '{model.path}'."
        raise ModelFileError(msg, logger)

    if data_source.get("type") == "structured":
        if override.get("connection_string"):
            msg = f"Data source '{name}' is a structured data source; only user_id and password can be overridden."
            raise ModelFileError(msg, logger)
        credential = data_source.setdefault("credential", {"AuthenticationKind": "UsernamePassword"})
        if override.get("user_id"):
            credential["Username"] = override["user_id"]
        if override.get("password"):
            credential["Password"] = override["password"]
        return

    if override.get("connection_string"):
        data_source["connectionString"] = override["connection_string"]
    if override.get("user_id"):
        data_source["impersonationMode"] = "impersonateAccount"
        data_source["account"] = override["user_id"]
    if override.get("password"):
        data_source["password"] = override["password"]


def _override_xml_data_source(model: TabularModel, name: str, override: dict) -> None:
    data_source = next(
        (
            ds
            for ds in model.definition.iterfind(f"{ENGINE}DataSources/{ENGINE}DataSource")
            if (ds.findtext(f"{ENGINE}Name") or "").casefold() == name.casefold()
        ),
        None,
    )
    if data_source is None:
        msg = f"Data source '{name}' not found in model file '{model.path}'."
        raise ModelFileError(msg, logger)

    if override.get("connection_string"):
        _set_child_text(data_source, "ConnectionString", override["connection_string"])

    if override.get("user_id") or override.get("password"):
        impersonation = data_source.find(f"{ENGINE}ImpersonationInfo")
        if impersonation is None:
            impersonation = ET.SubElement(data_source, f"{ENGINE}ImpersonationInfo")
        _set_child_text(impersonation, "ImpersonationMode", "ImpersonateAccount")
        if override.get("user_id"):
            _set_child_text(impersonation, "Account", override["user_id"])
        if override.get("password"):
            _set_child_text(impersonation, "Password", override["password"])


def _set_child_text(parent: ET.Element, tag: str, text: str) -> None:
    child = parent.find(f"{ENGINE}{tag}")
    if child is None:
        child = ET.SubElement(parent, f"{ENGINE}{tag}")
    child.text = text
