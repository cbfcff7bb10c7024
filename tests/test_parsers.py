"""
Unit Tests — Diagnostic Parsers
===============================
TypeScript, ESLint (JSON + stylish), Metro, React Native and Expo output
parsing with sample logs.

No filesystem access required.
"""
import json

import pytest

from fixloop.parser.typescript_parser import (
    TypeScriptError,
    parse_typescript_output,
    get_error_category,
    get_error_severity_level,
)
from fixloop.parser.eslint_parser import (
    parse_eslint_json_output,
    parse_eslint_stylish_output,
    parse_eslint_output,
    get_eslint_error_category,
)
from fixloop.parser.metro_parser import parse_metro_output
from fixloop.parser.react_native_parser import (
    ReactNativeError,
    parse_react_native_error,
    get_react_native_error_description,
    get_react_native_error_suggestion,
    is_react_native_error_critical,
)
from fixloop.parser.expo_parser import parse_expo_output


# ---------------------------------------------------------------------------
# Sample Logs
# ---------------------------------------------------------------------------
TSC_LOG = """\
src/App.tsx(15,5): error TS2304: Cannot find name 'React'.
src/components/Button.tsx(22,10): error TS2322: Type 'string' is not assignable to type 'number'.
Found 2 errors.
"""

TSC_PRETTY_LOG = """\
\x1b[96msrc/App.tsx\x1b[0m:\x1b[93m15\x1b[0m:\x1b[93m5\x1b[0m - \x1b[91merror\x1b[0m\x1b[90m TS2304: \x1b[0mCannot find name 'React'.

15     React.useState();
       ~~~~~
"""

ESLINT_JSON = json.dumps([
    {
        "filePath": "/project/src/App.tsx",
        "messages": [
            {"ruleId": "no-undef", "severity": 2, "message": "'foo' is not defined.", "line": 12, "column": 7},
            {"ruleId": "semi", "severity": 1, "message": "Missing semicolon.", "line": 20, "column": 1},
            {"ruleId": "quotes", "severity": 0, "message": "off rule", "line": 1, "column": 1},
        ],
    },
    {
        "filePath": "src/utils.ts",
        "messages": [
            {"ruleId": None, "severity": 2, "message": "Parsing error: Unexpected token", "line": 3, "column": 4},
        ],
    },
])

ESLINT_STYLISH = """\
/project/src/App.tsx
  12:7  error    'foo' is not defined  no-undef
  20:1  warning  Missing semicolon     semi

src/utils.ts
  3:4  error  Parsing error: Unexpected token

✖ 3 problems (2 errors, 1 warning)
"""

METRO_LOG = """
Starting Metro Bundler
error: Unable to resolve module '@react-navigation/native' from 'src/App.tsx': Module does not exist in the Haste module map

SyntaxError: Unexpected token (15:5)
  in src/components/Button.tsx
"""

RN_LOG = """
Error: Text strings must be rendered within a <Text> component
  in MyComponent (at App.tsx:42:5)

Error: undefined is not an object (evaluating 'user.name')
  in ProfileScreen (at screens/Profile.tsx:25:10)
"""

EXPO_LOG = """
Error: Missing ios.bundleIdentifier in app.json
The bundle identifier is required for iOS builds.

Warning: Expo plugin 'expo-camera' is not installed
"""


# ===========================================================================
# 1. TypeScript
# ===========================================================================
class TestTypeScriptParser:

    def test_single_line_exact_fields(self):
        errors = parse_typescript_output("src/App.tsx(15,5): error TS2304: Cannot find name 'React'.")
        assert errors == [TypeScriptError(
            file="src/App.tsx", line=15, column=5, severity="error",
            code="TS2304", message="Cannot find name 'React'.",
        )]

    def test_one_record_per_matching_line(self):
        errors = parse_typescript_output(TSC_LOG)
        assert len(errors) == 2
        assert [e.code for e in errors] == ["TS2304", "TS2322"]
        assert errors[1].file == "src/components/Button.tsx"
        assert errors[1].line == 22
        assert errors[1].column == 10

    def test_warning_severity_maps_directly(self):
        errors = parse_typescript_output("a.ts(1,1): warning TS6133: 'x' is declared but never used.")
        assert errors[0].severity == "warning"

    def test_pretty_format_with_ansi(self):
        errors = parse_typescript_output(TSC_PRETTY_LOG)
        assert len(errors) == 1
        assert errors[0].file == "src/App.tsx"
        assert errors[0].line == 15
        assert errors[0].code == "TS2304"

    def test_windows_paths_normalized(self):
        errors = parse_typescript_output("src\\App.tsx(1,2): error TS2307: Cannot find module './x'.")
        assert errors[0].file == "src/App.tsx"

    def test_relative_prefix_kept_as_captured(self):
        errors = parse_typescript_output("./src/App.tsx(15,5): error TS2304: Cannot find name 'React'.")
        assert errors[0].file == "./src/App.tsx"
        assert (errors[0].line, errors[0].column, errors[0].code) == (15, 5, "TS2304")

    @pytest.mark.parametrize("raw", ["", "   \n", "Found 0 errors.", "random text (1,2) nope"])
    def test_no_matches_returns_empty(self, raw):
        assert parse_typescript_output(raw) == []

    def test_category_and_severity_level(self):
        assert get_error_category("TS2304") == "import"
        assert get_error_severity_level("TS2304") == "critical"
        assert get_error_category("TS9999") == "unknown"


# ===========================================================================
# 2. ESLint
# ===========================================================================
class TestESLintParser:

    def test_json_severity_normalization(self):
        errors = parse_eslint_json_output(ESLINT_JSON)
        assert [e.severity for e in errors] == ["error", "warning", "error"]

    def test_json_severity_zero_skipped(self):
        errors = parse_eslint_json_output(ESLINT_JSON)
        assert all(e.rule_id != "quotes" for e in errors)

    def test_json_missing_rule_id_is_empty_string(self):
        errors = parse_eslint_json_output(ESLINT_JSON)
        assert errors[-1].rule_id == ""
        assert errors[-1].file == "src/utils.ts"

    def test_json_fields(self):
        first = parse_eslint_json_output(ESLINT_JSON)[0]
        assert first.file == "/project/src/App.tsx"
        assert first.line == 12
        assert first.column == 7
        assert first.message == "'foo' is not defined."

    @pytest.mark.parametrize("raw", ["", "not json", "{\"a\": 1}", "[1, 2, 3]", "[{\"messages\": \"x\"}]"])
    def test_json_malformed_returns_empty(self, raw):
        assert parse_eslint_json_output(raw) == []

    def test_stylish_rows(self):
        errors = parse_eslint_stylish_output(ESLINT_STYLISH)
        assert len(errors) == 3
        assert errors[0].file == "/project/src/App.tsx"
        assert errors[0].rule_id == "no-undef"
        assert errors[0].message == "'foo' is not defined"
        assert errors[1].severity == "warning"
        assert errors[1].rule_id == "semi"

    def test_stylish_row_without_rule(self):
        errors = parse_eslint_stylish_output(ESLINT_STYLISH)
        assert errors[2].file == "src/utils.ts"
        assert errors[2].rule_id == ""
        assert errors[2].message == "Parsing error: Unexpected token"

    def test_stylish_rows_before_header_skipped(self):
        assert parse_eslint_stylish_output("  1:1  error  orphan  no-undef\n") == []

    def test_format_autodetect(self):
        assert len(parse_eslint_output(ESLINT_JSON)) == 3
        assert len(parse_eslint_output(ESLINT_STYLISH)) == 3
        assert parse_eslint_output("") == []

    def test_rule_categories(self):
        assert get_eslint_error_category("react-hooks/rules-of-hooks") == "hooks"
        assert get_eslint_error_category("no-unused-vars") == "variables"
        assert get_eslint_error_category("some-plugin/odd-rule") == "unknown"


# ===========================================================================
# 3. Metro
# ===========================================================================
class TestMetroParser:

    def test_sample_log_blocks(self):
        errors = parse_metro_output(METRO_LOG)
        assert [e.type for e in errors] == ["resolve", "syntax"]

    def test_resolve_fields(self):
        resolve = parse_metro_output(METRO_LOG)[0]
        assert resolve.module == "@react-navigation/native"
        assert resolve.file == "src/App.tsx"
        assert resolve.message.startswith("Unable to resolve module")

    def test_syntax_file_from_in_line(self):
        syntax = parse_metro_output(METRO_LOG)[1]
        assert syntax.file == "src/components/Button.tsx"
        assert syntax.line == 15
        assert syntax.column == 5

    def test_syntax_file_from_prefix(self):
        errors = parse_metro_output("error: SyntaxError: src/App.tsx: Unexpected token (3:9)")
        assert len(errors) == 1
        assert errors[0].type == "syntax"
        assert errors[0].file == "src/App.tsx"
        assert errors[0].line == 3

    def test_transform_block(self):
        errors = parse_metro_output("error: TransformError: src/index.js: babel plugin crashed")
        assert errors[0].type == "transform"
        assert errors[0].file == "src/index.js"

    def test_unknown_block_with_content(self):
        errors = parse_metro_output("error: something odd happened in the bundler")
        assert errors[0].type == "unknown"
        assert errors[0].message == "something odd happened in the bundler"

    def test_preamble_and_empty_blocks_ignored(self):
        assert parse_metro_output("Starting Metro Bundler\nBUNDLE ./index.js") == []
        assert parse_metro_output("error:") == []
        assert parse_metro_output("") == []


# ===========================================================================
# 4. React Native
# ===========================================================================
class TestReactNativeParser:

    def test_component_blocks(self):
        errors = parse_react_native_error(RN_LOG)
        assert len(errors) == 2
        first = errors[0]
        assert first.type == "component"
        assert first.component == "MyComponent"
        assert first.file == "App.tsx"
        assert first.line == 42
        assert first.column == 5
        assert first.message == "Text strings must be rendered within a <Text> component"

    def test_message_skips_stack_lines(self):
        errors = parse_react_native_error(RN_LOG)
        assert errors[1].message == "undefined is not an object (evaluating 'user.name')"
        assert errors[1].file == "screens/Profile.tsx"

    @pytest.mark.parametrize("raw, expected", [
        ("Error: Invalid style prop 'colour'", "stylesheet"),
        ("Warning: Failed prop type: value is required", "props"),
        ("Error: Invalid hook call. Hooks can only be called inside of the body", "hooks"),
        ("Error: Couldn't find a navigation object", "navigation"),
        ("Error: Platform.select received an unknown key", "platform"),
        ("Invariant Violation: Module AppRegistry is not a registered callable module", "unknown"),
    ])
    def test_classification_waterfall(self, raw, expected):
        errors = parse_react_native_error(raw)
        assert len(errors) == 1
        assert errors[0].type == expected

    def test_warning_block_severity(self):
        errors = parse_react_native_error("Warning: Failed prop type: value is required")
        assert errors[0].severity == "warning"

    def test_unclassified_block_dropped(self):
        assert parse_react_native_error("Error: network request failed") == []

    def test_empty_input(self):
        assert parse_react_native_error("") == []

    def test_helpers(self):
        assert get_react_native_error_description("hooks") == "React Hooks usage error"
        assert get_react_native_error_description("nope") == "Unknown React Native error"
        assert is_react_native_error_critical(ReactNativeError(type="navigation", message="x"))
        assert not is_react_native_error_critical(ReactNativeError(type="stylesheet", message="x"))
        tip = get_react_native_error_suggestion("Text strings must be rendered within a <Text> component")
        assert tip["example"] == "<Text>Your text here</Text>"
        assert get_react_native_error_suggestion("all good") is None


# ===========================================================================
# 5. Expo
# ===========================================================================
class TestExpoParser:

    def test_sample_log(self):
        errors = parse_expo_output(EXPO_LOG)
        assert len(errors) == 2
        assert errors[0].type == "config"
        assert errors[0].severity == "error"
        assert errors[0].file == "app.json"
        assert errors[0].detail == "The bundle identifier is required for iOS builds."
        assert errors[1].type == "plugin"
        assert errors[1].severity == "warning"

    def test_command_error_prefix(self):
        errors = parse_expo_output("CommandError: prebuild failed to generate native project")
        assert errors[0].type == "prebuild"

    def test_no_blocks(self):
        assert parse_expo_output("All good") == []
        assert parse_expo_output("") == []
