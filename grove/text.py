"""Centralized user-facing text for Grove."""

from __future__ import annotations

class Styles:
    ERROR = "red"
    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "dim"
    TITLE = "bold cyan"
    TABLE_HEADER = "bold magenta"


class Messages:
    APP_HELP = "Grove - language features for Forester forests."
    HELP_WORKSPACE_PATH = "Workspace root containing the forest configuration."
    HELP_VERBOSE = "Log cache and indexer activity to stderr."
    HELP_TREE_ID = "Tree id, e.g. `abc-0001`."
    HELP_SYMBOL_QUERY = "Substring matched against id, title and taxon (empty lists all trees)."
    HELP_COMPLETE_TEXT = "Line text before the cursor, e.g. `\\transclude{abc`."
    HELP_SHOW_ID = "Show the tree id alongside its title in completion labels."
    HELP_NEW_DEST = "Folder the new tree is written to (defaults to the workspace root)."
    HELP_NEW_PREFIX = "Id prefix for the new tree; prompts when omitted."
    HELP_NEW_TEMPLATE = "Template name from `templates/`; prompts when omitted."
    HELP_NEW_RANDOM = "Ask forester for a random id instead of the next sequential one."
    HELP_SERVE_NO_WATCH = "Do not watch the workspace with watchdog; rely on client file events."
    HELP_SET_FORESTER_PATH = "Set the forester executable used for queries and commands."
    HELP_SET_FOREST_CONFIG = "Set the forest configuration file, relative to the workspace root."
    HELP_SET_SHOW_ID = "Show tree ids in completion labels (true/false)."
    HELP_SET_RANDOM = "Create trees with random ids (true/false)."
    HELP_SET_EXTENSIONS = "Set the corpus file extensions watched for changes (repeatable)."
    HELP_CLEAR_EXTENSIONS = "Reset watched extensions to the default."
    HELP_SET_EXCLUDE_PATTERNS = "Set gitignore-style patterns ignored by the watcher (repeatable)."
    HELP_CLEAR_EXCLUDE_PATTERNS = "Remove all exclude patterns."
    HELP_SHOW_CONFIG = "Show current configuration."

    ERROR_NO_WORKSPACE_ROOT = "No workspace folder is open; Grove needs a forest root."
    WARNING_MULTIPLE_ROOTS = "Grove supports one workspace folder; using {root}."
    ERROR_FORESTER_PATH_EMPTY = "Forester executable path must not be empty."
    ERROR_FORESTER_MISSING = (
        "`{program}` was not found. Install forester or set its path via "
        "`grove config --set-forester-path <path>`."
    )
    ERROR_FORESTER_LAUNCH = "Unable to start `{program}` ({reason})."
    ERROR_FORESTER_FAILED = "`forester {args}` exited with status {code}: {detail}"
    ERROR_QUERY_JSON_INVALID = "forester query returned invalid JSON ({reason})."
    ERROR_QUERY_RECORD_INVALID = "forester query returned a malformed record: {record!r}"
    ERROR_QUERY_PAYLOAD_INVALID = "forester query output must be a JSON object or list."
    ERROR_REBUILD_FAILED = "Index rebuild failed ({reason})."
    ERROR_FOREST_CONFIG_MISSING = "Forest configuration not found at {path}."
    ERROR_FOREST_CONFIG_INVALID = "Forest configuration at {path} is invalid ({reason})."
    REASON_FOREST_TABLE = "`forest` must be a table"
    REASON_FOREST_LIST = "`forest.{field}` must be a list of strings"
    ERROR_CONFIG_JSON_INVALID = "Config JSON must be an object."
    ERROR_CONFIG_VALUE_INVALID = "Config value for `{field}` has the wrong type."
    ERROR_BOOLEAN_INVALID = "Expected a boolean value, got `{value}`."
    ERROR_PREFIX_EMPTY = "A prefix is required to create a tree."
    ERROR_INVALID_CHOICE = "Invalid choice `{value}`. Choose one of: {allowed}."
    ERROR_NEW_ARGUMENTS = "grove.new expects a destination folder and a prefix."

    INFO_NONE = "none"
    INFO_NO_RESULTS = "No matching trees found."
    INFO_NO_COMPLETIONS = "No completion trigger before the cursor, or no trees to offer."
    INFO_TREE_NOT_FOUND = "No tree with id `{id}`."
    INFO_NEW_CREATED = "Created {path}."
    WARNING_NEW_NO_OUTPUT = "forester new did not report a created file."
    PROMPT_PREFIX_CHOICES = "Prefixes from the forest configuration:"
    PROMPT_PREFIX = "Prefix (number or a new prefix)"
    PROMPT_TEMPLATE_CHOICES = "Templates:"
    PROMPT_TEMPLATE = "Template (number or name)"

    INFO_FORESTER_PATH_SET = "Forester executable set to {value}."
    INFO_FOREST_CONFIG_SET = "Forest configuration file set to {value}."
    INFO_SHOW_ID_SET = "Show ids in completions: {value}."
    INFO_RANDOM_SET = "Random ids for new trees: {value}."
    INFO_EXTENSIONS_SET = "Watched extensions: {value}."
    INFO_EXCLUDE_PATTERNS_SET = "Exclude patterns: {value}."
    INFO_CONFIG_SUMMARY = (
        "Config file: {path}\n"
        "Forester executable: {forester}\n"
        "Forest configuration: {forest_config}\n"
        "Show ids in completions: {show_id}\n"
        "Random ids for new trees: {random}\n"
        "Watched extensions: {extensions}\n"
        "Exclude patterns: {excludes}"
    )

    DOCTOR_TITLE = "Grove v{version} diagnostics"
    DOCTOR_FORESTER_FOUND = "forester is available at {path}."
    DOCTOR_FORESTER_MISSING = "`{program}` is not on PATH."
    DOCTOR_FORESTER_MISSING_DETAIL = (
        "Install forester (opam install forester) or run "
        "`grove config --set-forester-path <path>`."
    )
    DOCTOR_CONFIG_EXISTS = "Config file found at {path}."
    DOCTOR_CONFIG_DEFAULT = "No config file; using defaults."
    DOCTOR_CONFIG_INVALID = "Config file at {path} could not be parsed."
    DOCTOR_ROOT_FOUND = "Workspace root is {path}."
    DOCTOR_ROOT_MISSING = "Workspace root {path} is not a directory."
    DOCTOR_FOREST_CONFIG_OK = "{path} parsed (prefixes: {prefixes})."
    DOCTOR_FOREST_CONFIG_INVALID = "Forest configuration could not be read."
    DOCTOR_ALL_PASSED = "All checks passed."
    DOCTOR_SOME_FAILED = "Some checks failed; see details above."

    TABLE_SYMBOLS_TITLE = "Trees"
    TABLE_HEADER_ID = "Id"
    TABLE_HEADER_TITLE = "Title"
    TABLE_HEADER_PATH = "Source"
    TABLE_HEADER_LABEL = "Label"
    TABLE_HEADER_DETAIL = "Detail"
    TABLE_HEADER_INSERT = "Insert"
