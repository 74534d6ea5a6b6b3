"""
Rule-file transformer: Lark parse tree to tokmatch AST.

This module provides the RuleTransformer class that converts Lark parse trees
into rule-file AST nodes (imports, entity statements, pattern statements and
their bracketed token specifiers).
"""

import re
from typing import Optional

from lark import Transformer, v_args

from . import tm_ast as ast
from .tm_errors import RuleFileError

RE_STRING_ESCAPE = re.compile(r"\\(.)")


@v_args(inline=True)  # This simplifies most method signatures
class RuleTransformer(Transformer):
    """
    Transformer that converts Lark parse trees into rule-file AST nodes.

    Checks the statement-level constraints the grammar cannot express:
    unique import aliases and references to imported lists.
    """

    def __init__(self, rules_file_path: Optional[str] = None):
        super().__init__()
        self.rules_file_path = rules_file_path

    def root(self, version, *statements):
        """Transform root node into version, imports, entities and patterns."""
        imports = []
        entities = []
        patterns = []
        for item in statements:
            if isinstance(item, ast.Import):
                imports.append(item)
            elif isinstance(item, ast.EntityDef):
                entities.append(item)
            elif isinstance(item, ast.PatternDef):
                patterns.append(item)

        aliases = set()
        for imp in imports:
            if imp.alias in aliases:
                raise RuleFileError(f"Duplicate import alias: {imp.alias!r}")
            aliases.add(imp.alias)
        for pattern in patterns:
            for spec in pattern.specs:
                for item in spec.items:
                    if isinstance(item.value, ast.ListRef) and item.value.alias not in aliases:
                        raise RuleFileError(
                            f"Pattern for {pattern.entity_id!r} references unknown list "
                            f"[[{item.value.alias}]]"
                        )

        return ast.Root(
            version=version,
            imports=tuple(imports),
            entities=tuple(entities),
            patterns=tuple(patterns),
            rules_file_path=self.rules_file_path,
        )

    def version_stmt(self, version_token):
        """Transform version statement."""
        return ast.Version(value=str(version_token))

    def import_stmt(self, path, alias, opts=None):
        """Transform import statement with path, alias, and optional flags."""
        flags = opts if opts is not None else []
        return ast.Import(path=self.string(path), alias=str(alias), flags=tuple(flags))

    def import_opts(self, *flags):
        """Transform import options list."""
        return list(flags)

    def import_flag(self, token):
        return str(token)

    def entity_stmt(self, entity_id, *attrs):
        """Transform entity statement with its key=value attributes."""
        return ast.EntityDef(entity_id=str(entity_id), attrs=tuple(attrs))

    def entity_attr(self, key, value):
        return (str(key), value)

    def name(self, token):
        """Bare identifier used as an attribute value, e.g. on_match=merge."""
        return str(token)

    def pattern_stmt(self, entity_id, *items):
        """Transform pattern statement: optional label, then token specifiers."""
        label = None
        specs = []
        for item in items:
            if isinstance(item, ast.SpecDef):
                specs.append(item)
            else:
                label = item
        return ast.PatternDef(entity_id=str(entity_id), specs=tuple(specs), label=label)

    def pattern_label(self, token):
        return self.string(token)

    def token_spec(self, *children):
        """Transform a bracketed specifier and its optional quantifier."""
        items = ()
        quant = ast.OP_ONE
        for child in children:
            if isinstance(child, tuple):
                items = child
            else:
                quant = str(child)
        return ast.SpecDef(items=items, quant=quant)

    def spec_items(self, *items):
        return tuple(items)

    def eq_item(self, attr, value):
        return ast.SpecItem(attr=str(attr), op="=", value=value)

    def ne_item(self, attr, value):
        return ast.SpecItem(attr=str(attr), op="!=", value=value)

    def in_item(self, attr, value):
        return ast.SpecItem(attr=str(attr), op="in", value=value)

    def list_ref(self, alias):
        return ast.ListRef(alias=str(alias))

    def value_list(self, *values):
        return tuple(values)

    def string(self, token):
        """Transform string literal, stripping quotes and escapes."""
        return RE_STRING_ESCAPE.sub(r"\1", str(token)[1:-1])

    def integer(self, token):
        return int(token)

    def true(self):
        return True

    def false(self):
        return False
