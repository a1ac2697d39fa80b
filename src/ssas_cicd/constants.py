# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Constants for the ssas-cicd package."""

# General
VERSION = "0.3.2"
FEATURE_FLAG = set()
USER_AGENT = f"ssas-cicd/{VERSION}"
REQUEST_TIMEOUT_SECONDS = 300
AZURE_AS_TOKEN_SCOPE = "https://*.asazure.windows.net/.default"

# XMLA namespaces
XMLA_NAMESPACES = {
    "soap": "http://schemas.xmlsoap.org/soap/envelope/",
    "xmla": "urn:schemas-microsoft-com:xml-analysis",
    "rowset": "urn:schemas-microsoft-com:xml-analysis:rowset",
    "empty": "urn:schemas-microsoft-com:xml-analysis:empty",
    "exception": "urn:schemas-microsoft-com:xml-analysis:exception",
    "engine": "http://schemas.microsoft.com/analysisservices/2003/engine",
    "ddl200": "http://schemas.microsoft.com/analysisservices/2010/engine/200",
}
SOAP_ACTION_PREFIX = "urn:schemas-microsoft-com:xml-analysis:"

# XMLA request templates
SOAP_ENVELOPE_TEMPLATE = (
    '<Envelope xmlns="http://schemas.xmlsoap.org/soap/envelope/">'
    "<Body>{body}</Body>"
    "</Envelope>"
)
DISCOVER_TEMPLATE = (
    '<Discover xmlns="urn:schemas-microsoft-com:xml-analysis">'
    "<RequestType>{request_type}</RequestType>"
    "<Restrictions><RestrictionList>{restrictions}</RestrictionList></Restrictions>"
    "<Properties><PropertyList>{properties}</PropertyList></Properties>"
    "</Discover>"
)
EXECUTE_TEMPLATE = (
    '<Execute xmlns="urn:schemas-microsoft-com:xml-analysis">'
    "<Command>{command}</Command>"
    "<Properties><PropertyList>{properties}</PropertyList></Properties>"
    "</Execute>"
)
STATEMENT_TEMPLATE = "<Statement>{statement}</Statement>"
PROCESS_TEMPLATE = (
    '<Process xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
    "<Type>{process_type}</Type>"
    "<Object><DatabaseID>{database}</DatabaseID></Object>"
    "</Process>"
)
ALTER_TEMPLATE = (
    '<Alter AllowCreate="true" ObjectExpansion="ExpandFull" '
    'xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
    "<Object><DatabaseID>{database}</DatabaseID></Object>"
    "<ObjectDefinition>{definition}</ObjectDefinition>"
    "</Alter>"
)
DELETE_TEMPLATE = (
    '<Delete xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
    "<Object><DatabaseID>{database}</DatabaseID></Object>"
    "</Delete>"
)

# Discover request types and rowset columns
DISCOVER_CATALOGS = "DBSCHEMA_CATALOGS"
CATALOG_NAME_COLUMN = "CATALOG_NAME"
COMPATIBILITY_LEVEL_COLUMN = "COMPATIBILITY_LEVEL"
DISCOVER_XML_METADATA = "DISCOVER_XML_METADATA"
OBJECT_EXPANSION_RESTRICTION = "ObjectExpansion"
EXPAND_OBJECT = "ExpandObject"

# Compatibility levels
TMSL_MIN_COMPATIBILITY_LEVEL = 1200
DEFAULT_JSON_COMPATIBILITY_LEVEL = 1200
DEFAULT_XML_COMPATIBILITY_LEVEL = 1100

# Refresh types: TMSL refresh type -> legacy XMLA process type
DEFAULT_REFRESH_TYPE = "full"
REFRESH_TYPES = {
    "full": "ProcessFull",
    "clearValues": "ProcessClear",
    "calculate": "ProcessRecalc",
    "dataOnly": "ProcessData",
    "automatic": "ProcessDefault",
    "add": "ProcessAdd",
    "defragment": "ProcessDefrag",
}

# Model files
MODEL_FILE_EXTENSIONS = (".bim", ".json", ".xmla")
DATA_SOURCE_OVERRIDE_KEYS = ("name", "connection_string", "user_id", "password")

# REGEX Constants
VALID_SERVER_REGEX = r"^https?://[^\s/]+(/\S*)?$"
INVALID_DATABASE_CHAR_REGEX = r'[.,;\'`:/\\*|?"&%$!+=()\[\]{}<>]'
PASSWORD_MASK_REGEXES = [
    (r"(?i)(password\s*=\s*)[^;\"<]*", r"\1********"),
    (r'(?i)("password"\s*:\s*")[^"]*(")', r"\1********\2"),
    (r"(?i)(<Password>)[^<]*(</Password>)", r"\1********\2"),
]

INDENT = "->"

# Azure DevOps pipeline tasks
PIPELINE_INPUT_PREFIX = "INPUT_"
PIPELINE_COMPATIBILITY_LEVEL_VARIABLE = "SsasCompatibilityLevel"

# Define supported sections and settings for config file
CONFIG_SECTIONS = {
    "core": {"type": dict, "settings": ["server", "database", "model_file"]},
    "deploy": {"type": dict, "settings": ["data_sources", "skip"]},
    "process": {"type": dict, "settings": ["refresh_type", "skip"]},
    "features": {"type": (list, dict), "settings": []},
    "constants": {"type": dict, "settings": []},
}

# Config deployment validation messages
CONFIG_VALIDATION_MSGS = {
    # File validation
    "file": {
        "path_empty": "Configuration file path must be a non-empty string",
        "invalid_path": "Invalid file path '{}': {}",
        "not_found": "Configuration file not found: {}",
        "not_file": "Path is not a file: {}",
        "yaml_syntax": "Invalid YAML syntax: {}",
        "encoding_error": "File encoding error (expected UTF-8): {}",
        "permission_denied": "Permission denied reading file: {}",
        "unexpected_error": "Unexpected error reading file: {}",
        "empty_file": "Configuration file is empty or contains only comments",
        "not_dict": "Configuration must be a dictionary, got {}",
    },
    # Override validation
    "override": {
        "apply_failed": "Failed to apply config override for section '{}': {}",
        "unsupported_section": "Cannot override unsupported config section: '{}'. Supported: {}",
        "wrong_type": "Override section '{}' must be a {}, got {}",
        "unsupported_setting": "Cannot override unsupported setting '{}.{}'. Supported: {}",
        "cannot_create_core": "Cannot create 'core' section - required section must exist in the config file to override",
        "cannot_create_required": "Cannot create required field 'core.{}'",
    },
    # Structure validation
    "structure": {
        "missing_core": "Configuration must contain a 'core' section",
        "core_not_dict": "'core' section must be a dictionary, got {}",
        "missing_server": "Configuration must specify 'server' in core section",
        "missing_database": "Configuration must specify 'database' in core section",
        "missing_model_file": "Configuration must specify 'model_file' in core section unless deploy is skipped",
    },
    # Environment validation
    "environment": {
        "no_env_with_mappings": "Configuration contains environment mappings but no environment was provided. Please specify an environment or remove environment mappings.",
        "env_not_found": "Environment '{}' not found in '{}' mappings. Available: {}",
        "empty_mapping": "'{}' environment mapping cannot be empty",
        "invalid_env_key": "Environment key in '{}' must be a non-empty string, got: {}",
        "empty_env_value": "'{}' value for environment '{}' cannot be empty",
    },
    # Field validation
    "field": {
        "string_or_dict": "'{}' must be either a string or environment mapping dictionary (e.g., {{dev: 'dev_value', prod: 'prod_value'}}), got type {}",
        "bool_or_dict": "'{}' must be either a boolean or environment mapping dictionary (e.g., {{dev: true, prod: false}}), got type {}",
        "list_or_dict": "'{}' must be either a list or environment mapping dictionary (e.g., {{dev: [...], prod: [...]}}), got type {}",
        "empty_value": "'{}' cannot be empty",
        "invalid_server": "'{}' must be an http(s) XMLA endpoint URL: {}",
        "invalid_database": "'{}' contains characters not allowed in a database name: {}",
        "invalid_refresh_type": "'{}' has unsupported refresh type '{}'. Available types: {}",
    },
    # Path validation
    "path": {
        "skip": "Skipping {} path resolution due to config file validation failure",
        "absolute": "Using absolute {} path{}: '{}'",
        "resolved": "{} '{}' resolved relative to config path{}: '{}'",
        "not_found": "{} not found at resolved path{}: '{}'",
        "not_file": "{} path exists but is not a file{}: '{}'",
        "invalid": "Invalid {} path '{}'{}: {}",
    },
    # Operation section validation
    "operation": {
        "not_dict": "'{}' section must be a dictionary, got {}",
        "data_source_type": "'{}[{}]' must be a dictionary, got {}",
        "data_source_name": "'{}[{}]' must contain a non-empty 'name'",
        "data_source_keys": "'{}[{}]' contains unsupported keys {}. Supported: {}",
        "list_entry_type": "'{}[{}]' must be a string, got {}",
        "list_entry_empty": "'{}[{}]' cannot be empty",
        "features_type": "'features' section must be either a list or environment mapping dictionary, got {}",
        "empty_section": "'{}' section cannot be empty if specified",
        "empty_section_env": "'{}.{}' cannot be empty if specified",
        "invalid_constant_key": "Constant key in '{}' must be a non-empty string, got: {}",
        "unknown_constant": "Unknown constant '{}' in '{}' - this constant does not exist in ssas_cicd.constants",
    },
    # Log messages
    "log": {
        "override_section": "Override: {} '{}' section with value: '{}'",
        "override_setting": "Override: {} {}.{} with value: '{}'",
        "override_env_specific": "Override: updated {}.{}.{} with value: '{}'",
        "override_env_mapping": "Override: {}.{} added with environment mapping, with {} value: '{}'",
        "override_added_section": "Override: added '{}' section",
    },
}
