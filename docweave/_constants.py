"""Common literal values used across docweave.

These constants keep filenames and marker strings centralized so the
walker, the TOC builder, and tests can import the same values without
drifting. Intended for internal use within the docweave package.

Examples
--------
>>> from docweave import _constants
>>> _constants.FRAGMENT_TEMPLATE.format(stem="intro", toc_filename="toc.json")
'intro.toc.json'
>>> _constants.TEMP_DIRNAME.startswith(".")
True
"""

TEMP_DIRNAME = ".docweave-temp"
FRAGMENT_TEMPLATE = "{stem}.{toc_filename}"

FILENAME_TOC_ORDER = "toc"
FILENAME_TOC_ORDER_YAML = "toc.yaml"
FILENAME_TOC_JSON = "toc.json"
FILENAME_TOC_XML = "toc.xml"
FILENAME_CONREF = "conref.md"
FILENAME_KEYREF = "keyref.yaml"
DIRNAME_INCLUDES = "includes"

EXTENSION_MARKDOWN = ".md"
EXTENSION_HTML = ".html"
EXTENSION_PDF = ".pdf"

PARAMETERIZED_ID = "%docweave-set-filename%"

INCLUDE_START_TEMPLATE = "<!-- Include START: {reference} -->"
INCLUDE_END = "<!-- Include END -->"
