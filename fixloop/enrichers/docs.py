"""
Documentation Links
===================
Attaches reference pages to a diagnostic.

Sources of links:
    1. TypeScript code  → handbook chapter for the code's category
    2. ESLint rule id   → the rule's page on the plugin's site
    3. Message keywords → hooks, navigation, platform, styling, text,
                          Expo config, module resolution

Several rules may contribute the same link; duplicates are kept since
the links are read by people and models, not machines.

Lookups are plain table reads, so there is nothing to memoize.
"""
import re
from typing import Optional

from fixloop.enrichers.classification import classify_typescript_code
from fixloop.models.suggestion import DocLink

_TS_HANDBOOK = "https://www.typescriptlang.org/docs/handbook"

_TYPESCRIPT_CATEGORY_DOCS: dict[str, list[DocLink]] = {
    "import": [
        DocLink(title="TypeScript: Modules", url=f"{_TS_HANDBOOK}/modules.html"),
        DocLink(title="TypeScript: Module Resolution", url=f"{_TS_HANDBOOK}/module-resolution.html"),
    ],
    "type": [
        DocLink(title="TypeScript: Everyday Types", url=f"{_TS_HANDBOOK}/2/everyday-types.html"),
        DocLink(title="TypeScript: Type Compatibility", url=f"{_TS_HANDBOOK}/type-compatibility.html"),
    ],
    "null-check": [
        DocLink(title="TypeScript: Narrowing", url=f"{_TS_HANDBOOK}/2/narrowing.html"),
    ],
    "generic": [
        DocLink(title="TypeScript: Generics", url=f"{_TS_HANDBOOK}/2/generics.html"),
    ],
    "async": [
        DocLink(title="TypeScript: Async/Await", url=f"{_TS_HANDBOOK}/release-notes/typescript-1-7.html"),
    ],
    "return": [
        DocLink(title="TypeScript: More on Functions", url=f"{_TS_HANDBOOK}/2/functions.html"),
    ],
    "syntax": [
        DocLink(title="TypeScript: The Basics", url=f"{_TS_HANDBOOK}/2/basic-types.html"),
    ],
}

# Each entry: (rule prefix, url template taking the rule name without prefix)
_ESLINT_PLUGIN_DOCS: list[tuple[str, str]] = [
    ("@typescript-eslint/", "https://typescript-eslint.io/rules/{name}"),
    ("react-hooks/", "https://react.dev/reference/rules/rules-of-hooks"),
    ("react-native/", "https://github.com/Intellicode/eslint-plugin-react-native/blob/master/docs/rules/{name}.md"),
    ("react/", "https://github.com/jsx-eslint/eslint-plugin-react/blob/master/docs/rules/{name}.md"),
    ("import/", "https://github.com/import-js/eslint-plugin-import/blob/main/docs/rules/{name}.md"),
]

# Each entry: (compiled_regex over message/file, links)
_CONTEXTUAL_DOCS: list[tuple[re.Pattern, list[DocLink]]] = [
    (re.compile(r"\bhooks?\b|\buse(?:State|Effect|Callback|Memo|Ref|Context|Reducer)\b", re.I), [
        DocLink(title="React: Rules of Hooks", url="https://react.dev/reference/rules/rules-of-hooks"),
    ]),
    (re.compile(r"navigation|navigator|screen|route", re.I), [
        DocLink(title="React Navigation: Getting Started", url="https://reactnavigation.org/docs/getting-started"),
    ]),
    (re.compile(r"Platform\.(?:OS|select)|platform", re.I), [
        DocLink(title="React Native: Platform-Specific Code", url="https://reactnative.dev/docs/platform-specific-code"),
    ]),
    (re.compile(r"StyleSheet|style\s+prop|\bstyles?\b", re.I), [
        DocLink(title="React Native: Style", url="https://reactnative.dev/docs/style"),
    ]),
    (re.compile(r"<Text>|Text strings", re.I), [
        DocLink(title="React Native: Text", url="https://reactnative.dev/docs/text"),
    ]),
    (re.compile(r"app\.json|app\.config|bundleIdentifier|expo", re.I), [
        DocLink(title="Expo: App Config", url="https://docs.expo.dev/versions/latest/config/app/"),
    ]),
    (re.compile(r"unable to resolve module", re.I), [
        DocLink(title="Metro: Resolution", url="https://metrobundler.dev/docs/resolution"),
    ]),
]


def get_typescript_doc_links(code: Optional[str]) -> list[DocLink]:
    if not code:
        return []
    return list(_TYPESCRIPT_CATEGORY_DOCS.get(classify_typescript_code(code), []))


def get_eslint_doc_links(rule_id: Optional[str]) -> list[DocLink]:
    if not rule_id:
        return []
    for prefix, template in _ESLINT_PLUGIN_DOCS:
        if rule_id.startswith(prefix):
            name = rule_id[len(prefix):]
            return [DocLink(title=f"ESLint rule: {rule_id}", url=template.format(name=name))]
    if "/" in rule_id:
        # Unknown plugin, no reliable URL
        return []
    return [DocLink(title=f"ESLint rule: {rule_id}", url=f"https://eslint.org/docs/latest/rules/{rule_id}")]


def get_contextual_doc_links(message: str, file: Optional[str] = None) -> list[DocLink]:
    """Keyword heuristics over the message and file name."""
    haystack = f"{message} {file or ''}"
    links: list[DocLink] = []
    for pattern, entries in _CONTEXTUAL_DOCS:
        if pattern.search(haystack):
            links.extend(entries)
    return links


def get_doc_links(source: str, code: Optional[str], message: str, file: Optional[str] = None) -> list[DocLink]:
    """Code/rule links first, then contextual ones."""
    if source == "typescript":
        links = get_typescript_doc_links(code)
    elif source == "eslint":
        links = get_eslint_doc_links(code)
    else:
        links = []
    return links + get_contextual_doc_links(message, file)


def format_doc_links(links: list[DocLink]) -> str:
    """Render links as a bulleted list, one per line."""
    return "\n".join(f"- {link.title}: {link.url}" for link in links)
