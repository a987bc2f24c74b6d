"""
Configuration constants to replace magic numbers throughout circflow
"""

import os
import tempfile

# Source files
DEFAULT_FILE_ENCODING = "utf-8"
DEFAULT_SOURCE_NAME = "<input>"

# Parser configuration (cache under temp dir to avoid cluttering project root)
DEFAULT_PARSER_CACHE_FILE = os.path.join(tempfile.gettempdir(), "circflow_parser.cache")

# Environment variables
COLOR_ENV_VAR = "CIRCFLOW_COLOR"

# Rendering
UNCAPTURED_PLACEHOLDER = "_"  # anonymous component outputs nobody reads

# Loop termination
FIELD_ARITHMETIC_DOCS_URL = "https://docs.circom.io/circom-language/basic-operators/#field-elements"
