import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from lark.exceptions import UnexpectedInput, VisitError

from tokmatch.tm_ast import (
    EntityDef,
    Import,
    ListRef,
    PatternDef,
    Root,
    SpecDef,
    SpecItem,
    Version,
)
from tokmatch.tm_errors import RuleFileError
from tokmatch.tm_parser import TM_RULES_VERSION, parse_file, parse_string

RULES = """\
version 1.0
# Honorifics that may precede a name
import "titles.txt" as title with ignore-case

entity Person ent_type="PERSON" acceptor=trim trim_list="title"
Person = [lower in [[title]]]? [is_title=true]+
Product as "PRODUCT" = [orth="Google"] [orth="Now"]
"""


def test_parse_full_rule_file():
    root = parse_string(RULES)
    assert isinstance(root, Root)
    assert root.version == Version(value=TM_RULES_VERSION)
    assert root.imports == (Import(path="titles.txt", alias="title", flags=("ignore-case",)),)
    assert root.entities == (
        EntityDef(
            entity_id="Person",
            attrs=(("ent_type", "PERSON"), ("acceptor", "trim"), ("trim_list", "title")),
        ),
    )
    assert len(root.patterns) == 2
    assert root.rules_file_path is None


def test_pattern_specifiers():
    person, product = parse_string(RULES).patterns
    assert person == PatternDef(
        entity_id="Person",
        specs=(
            SpecDef(items=(SpecItem(attr="lower", op="in", value=ListRef(alias="title")),), quant="?"),
            SpecDef(items=(SpecItem(attr="is_title", op="=", value=True),), quant="+"),
        ),
        label=None,
    )
    assert product.label == "PRODUCT"
    assert [s.items[0].value for s in product.specs] == ["Google", "Now"]
    assert all(s.quant == "1" for s in product.specs)


def test_values_and_operators():
    root = parse_string(
        'version 1.0\n'
        'X = [length=3, lower!="the"] [] [lower in ("a", "b")]* [is_punct=false]!\n'
    )
    first, wildcard, members, negated = root.patterns[0].specs
    assert first.items == (
        SpecItem(attr="length", op="=", value=3),
        SpecItem(attr="lower", op="!=", value="the"),
    )
    assert wildcard.items == ()
    assert members.items[0].value == ("a", "b")
    assert members.quant == "*"
    assert negated.items[0].value is False
    assert negated.quant == "!"


def test_string_escapes():
    root = parse_string('version 1.0\nQ = [orth="\\"quoted\\""]\n')
    assert root.patterns[0].specs[0].items[0].value == '"quoted"'


def test_entity_ids_with_dots_and_dashes():
    root = parse_string("version 1.0\nentity org.company-name\norg.company-name = [is_upper=true]\n")
    assert root.entities[0].entity_id == "org.company-name"
    assert root.patterns[0].entity_id == "org.company-name"


def test_bare_name_attribute_value():
    root = parse_string("version 1.0\nentity GoogleNow on_match=merge\n")
    assert root.entities[0].attrs == (("on_match", "merge"),)


def test_line_continuation_and_blank_lines():
    root = parse_string("\n\nversion 1.0\n\n\nX = [lower=\"a\"] \\\n    [lower=\"b\"]\n\n")
    assert len(root.patterns[0].specs) == 2


def test_missing_trailing_newline():
    root = parse_string('version 1.0\nX = [lower="a"]')
    assert root.patterns[0].entity_id == "X"


def test_unsupported_version():
    with pytest.raises(RuleFileError, match="Unsupported rule-file version"):
        parse_string('version 2.0\nX = [lower="a"]\n')


@pytest.mark.parametrize(
    "code",
    [
        'X = [lower="a"]\n',
        'version 1.0\nX = \n',
        'version 1.0\nX = [lower "a"]\n',
        'version 1.0\nX = [lower="a"]{2}\n',
        'version 1.0\nX [lower="a"]\n',
    ],
)
def test_syntax_errors(code):
    with pytest.raises(UnexpectedInput):
        parse_string(code)


def test_unknown_list_reference():
    with pytest.raises(RuleFileError, match=r"\[\[missing\]\]"):
        parse_string('version 1.0\nX = [lower in [[missing]]]\n')


def test_duplicate_import_alias():
    code = 'version 1.0\nimport "a.txt" as words\nimport "b.txt" as words\n'
    with pytest.raises(RuleFileError, match="Duplicate import alias"):
        parse_string(code)


def test_errors_can_stay_wrapped():
    with pytest.raises(VisitError):
        parse_string('version 1.0\nX = [lower in [[missing]]]\n', unwrap=False)


def test_parse_file_records_path(tmp_path):
    rules = tmp_path / "rules.tm"
    rules.write_text(RULES, encoding="utf-8")
    root = parse_file(rules)
    assert root.rules_file_path == str(rules)
