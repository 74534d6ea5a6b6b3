import re
from pathlib import Path
from typing import Optional

from lark import Lark
from lark.exceptions import VisitError

from .tm_ast import Root
from .tm_errors import RuleFileError
from .tm_transformer import RuleTransformer

# Rule-file language version. Bump together with tm_grammar.lark; rule files
# declaring any other version are rejected.
TM_RULES_VERSION = "1.0"

GRAMMAR_PATH = Path(__file__).parent / "tm_grammar.lark"
with open(GRAMMAR_PATH, "r", encoding="utf-8") as f:
    RULES_GRAMMAR = f.read()

rules_parser = Lark(RULES_GRAMMAR, start="root", parser="lalr", propagate_positions=True)

# Backslash at end of line joins the next line
RE_LINE_CONTINUATION = re.compile(r"\\[ \t]*\r?\n[ \t]*")


def parse_string(code: str, *, unwrap: bool = True, rules_file_path: Optional[str] = None) -> Root:
    """
    Parse rule-file source into a Root node.

    Syntax errors surface as lark's UnexpectedInput subclasses. Semantic
    errors raised while transforming are unwrapped from lark's VisitError
    unless ``unwrap`` is False.
    """
    code = RE_LINE_CONTINUATION.sub(" ", code)
    if not code.endswith("\n"):
        code += "\n"
    tree = rules_parser.parse(code)
    try:
        root = RuleTransformer(rules_file_path=rules_file_path).transform(tree)
    except VisitError as ve:
        if unwrap:
            raise ve.orig_exc from ve
        raise

    # Make sure the version matches the supported rule-file version
    if root.version.value != TM_RULES_VERSION:
        raise RuleFileError(
            f"Unsupported rule-file version: {root.version.value}. Expected {TM_RULES_VERSION}."
        )
    return root


def parse_file(path, *, unwrap: bool = True) -> Root:
    with open(path, "r", encoding="utf-8") as file:
        return parse_string(file.read(), unwrap=unwrap, rules_file_path=str(path))
