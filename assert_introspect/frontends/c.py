"""CAssertFrontend — tree-sitter C AST -> assertions with typed expression trees."""

from __future__ import annotations

import logging
import re
from typing import Callable

from tree_sitter import Node

from .. import constants
from ..classifier import ARITHMETIC_OPS, COMPARISON_OPS
from ..ctype import (
    BOOL,
    CHAR,
    DOUBLE,
    INT,
    UNKNOWN,
    UNSIGNED_LONG,
    VOID_POINTER,
    CType,
    TypeKind,
    TypeTable,
)
from ..expr import (
    AddressOf,
    Arithmetic,
    Assertion,
    Call,
    Comparison,
    Declaration,
    Expr,
    Literal,
    LogicalAnd,
    LogicalOr,
    Opaque,
    SourceInfo,
    StringLiteral,
    Variable,
    leaf_type,
)
from ..frontend import Frontend, TranslationUnit
from ..instrument import RoutineTable

logger = logging.getLogger(__name__)

# Prototypes made visible by standard headers: name -> (return type, pointer depth).
HEADER_PROTOTYPES: dict[str, dict[str, tuple[str, int]]] = {
    "stdio.h": {
        "printf": ("int", 0),
        "fprintf": ("int", 0),
        "sprintf": ("int", 0),
        "snprintf": ("int", 0),
        "puts": ("int", 0),
        "putchar": ("int", 0),
        "setlinebuf": ("void", 0),
    },
    "stdlib.h": {
        "abort": ("void", 0),
        "exit": ("void", 0),
        "abs": ("int", 0),
        "labs": ("long", 0),
        "atoi": ("int", 0),
        "atol": ("long", 0),
        "strtol": ("long", 0),
        "strtoul": ("unsigned long", 0),
        "strtoll": ("long long", 0),
        "malloc": ("void", 1),
        "calloc": ("void", 1),
        "free": ("void", 0),
        "getenv": ("char", 1),
    },
    "string.h": {
        "strlen": ("size_t", 0),
        "strcmp": ("int", 0),
        "strncmp": ("int", 0),
        "strstr": ("char", 1),
        "strchr": ("char", 1),
        "strrchr": ("char", 1),
        "strcpy": ("char", 1),
        "strdup": ("char", 1),
        "memcmp": ("int", 0),
        "memcpy": ("void", 1),
        "memset": ("void", 1),
    },
    "ctype.h": {
        name: ("int", 0)
        for name in (
            "isalpha",
            "isdigit",
            "isalnum",
            "isspace",
            "isupper",
            "islower",
            "toupper",
            "tolower",
        )
    },
    "assert.h": {
        constants.ASSERT_FAIL_ROUTINE: ("void", 0),
    },
}

SCOPE_NODE_TYPES = frozenset(
    {"compound_statement", "for_statement", "while_statement", "do_statement"}
)

SKIPPED_NODE_TYPES = frozenset(
    {"comment", "preproc_def", "preproc_function_def", "preproc_call"}
)

_INTEGER_SUFFIX = re.compile(r"[ul]+$")
_ESCAPE = re.compile(r"\\(x[0-9a-fA-F]+|[0-7]{1,3}|.)")
_SIMPLE_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    "'": "'",
    '"': '"',
    "?": "?",
}


def normalize_source_text(text: str) -> str:
    """Collapse runs of whitespace (including newlines) to single spaces."""
    return " ".join(text.split())


def decode_escapes(text: str) -> str:
    """Decode C escape sequences in the body of a string or char literal."""

    def replace(match: re.Match) -> str:
        esc = match.group(1)
        if esc[0] == "x":
            return chr(int(esc[1:], 16) & 0xFF)
        if esc[0] in "01234567":
            return chr(int(esc, 8) & 0xFF)
        return _SIMPLE_ESCAPES.get(esc, esc)

    return _ESCAPE.sub(replace, text)


def _integer_type(suffix: str, value: int) -> CType:
    unsigned = "u" in suffix
    if "ll" in suffix:
        name = "long long"
    elif "l" in suffix or value > 0x7FFFFFFF:
        name = "long"
    else:
        name = "int"
    return TypeTable().resolve(f"unsigned {name}" if unsigned else name)


def parse_number_literal(text: str) -> Literal:
    """Value and type of a C number literal, suffixes included."""
    lower = text.lower().replace("'", "")
    is_hex = lower.startswith("0x")
    is_float = ("p" in lower) if is_hex else ("." in lower or "e" in lower)
    if is_float:
        body = lower.rstrip("fl")
        value = float.fromhex(body) if is_hex else float(body)
        ctype = TypeTable().resolve("float") if lower.endswith("f") and not is_hex else DOUBLE
        return Literal(value, ctype, text)

    match = _INTEGER_SUFFIX.search(lower)
    suffix = match.group(0) if match else ""
    digits = lower[: len(lower) - len(suffix)]
    if is_hex:
        value = int(digits, 16)
    elif digits.startswith("0b"):
        value = int(digits[2:], 2)
    elif len(digits) > 1 and digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    return Literal(value, _integer_type(suffix, value), text)


class CAssertFrontend(Frontend):
    """Finds ``assert(...)`` sites in a C tree-sitter AST and builds their expression trees.

    Declarations are tracked in lexical scopes so each variable reference
    resolves to one ``Declaration`` (and hence one identity); function
    prototypes, definitions and standard ``#include`` directives determine
    return types and which runtime routines are available.
    """

    def __init__(self, assert_names: tuple[str, ...] = constants.DEFAULT_ASSERT_NAMES):
        self._assert_names = frozenset(assert_names)
        self._source: bytes = b""
        self._filename = constants.DEFAULT_FILENAME
        self._types = TypeTable()
        self._scopes: list[dict[str, Declaration]] = [{}]
        self._decl_counter = 0
        self._functions: dict[str, CType] = {}
        self._defined: list[str] = []
        self._enumerators: dict[str, int] = {}
        self._current_function = ""
        self._assertions: list[Assertion] = []
        self._STMT_DISPATCH: dict[str, Callable] = {
            "preproc_include": self._on_include,
            "function_definition": self._on_function_definition,
            "declaration": self._on_declaration,
            "type_definition": self._on_type_definition,
            "enum_specifier": self._on_enum_specifier,
            "expression_statement": self._on_expression_statement,
        }
        self._EXPR_DISPATCH: dict[str, Callable[..., Expr]] = {
            "parenthesized_expression": self._expr_paren,
            "identifier": self._expr_identifier,
            "null": self._expr_null,
            "true": self._expr_bool,
            "false": self._expr_bool,
            "number_literal": self._expr_number,
            "char_literal": self._expr_char,
            "string_literal": self._expr_string,
            "concatenated_string": self._expr_concatenated_string,
            "binary_expression": self._expr_binary,
            "unary_expression": self._expr_unary,
            "pointer_expression": self._expr_pointer,
            "update_expression": self._expr_update,
            "call_expression": self._expr_call,
            "cast_expression": self._expr_cast,
            "field_expression": self._expr_field,
            "subscript_expression": self._expr_subscript,
            "conditional_expression": self._expr_conditional,
            "comma_expression": self._expr_comma,
            "assignment_expression": self._expr_assignment,
            "sizeof_expression": self._expr_sizeof,
        }

    # ── entry point ──────────────────────────────────────────────

    def extract(
        self, tree, source: bytes, filename: str = constants.DEFAULT_FILENAME
    ) -> TranslationUnit:
        self._source = source
        self._filename = filename
        self._types = TypeTable()
        self._scopes = [{}]
        self._decl_counter = 0
        self._functions = {}
        self._defined = []
        self._enumerators = {}
        self._current_function = ""
        self._assertions = []

        self._walk(tree.root_node)

        routines = RoutineTable.from_declarations(self._functions)
        logger.info(
            "%s: %d assertions in %d functions",
            filename,
            len(self._assertions),
            len(self._defined),
        )
        return TranslationUnit(
            assertions=list(self._assertions),
            routines=routines,
            functions=list(self._defined),
        )

    # ── helpers ──────────────────────────────────────────────────

    def _node_text(self, node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _named_children(self, node) -> list:
        return [c for c in node.named_children if c.type != "comment"]

    def _declare(self, name: str, ctype: CType, scope: int = -1) -> Declaration:
        decl = Declaration(id=self._decl_counter, name=name, type=ctype)
        self._decl_counter += 1
        self._scopes[scope][name] = decl
        logger.debug("Declared %s: %s (#%d)", name, ctype, decl.id)
        return decl

    def _lookup(self, name: str) -> Declaration | None:
        return next(
            (scope[name] for scope in reversed(self._scopes) if name in scope), None
        )

    def _line(self, node) -> int:
        return node.start_point[0] + 1

    # ── statements ───────────────────────────────────────────────

    def _walk(self, node):
        if node.type in SKIPPED_NODE_TYPES:
            return
        handler = self._STMT_DISPATCH.get(node.type)
        if handler is not None:
            handler(node)
            return
        opens_scope = node.type in SCOPE_NODE_TYPES
        if opens_scope:
            self._scopes.append({})
        for child in node.named_children:
            self._walk(child)
        if opens_scope:
            self._scopes.pop()

    def _on_include(self, node):
        path_node = node.child_by_field_name("path")
        if path_node is None:
            return
        header = self._node_text(path_node).strip('<>"')
        prototypes = HEADER_PROTOTYPES.get(header)
        if prototypes is None:
            logger.debug("No prototypes known for <%s>", header)
            return
        for name, (type_name, depth) in prototypes.items():
            self._functions.setdefault(name, self._types.resolve(type_name, depth))

    def _on_function_definition(self, node):
        base = self._base_type_name(node.child_by_field_name("type"))
        name, depth, func_decl = self._unwrap_declarator(
            node.child_by_field_name("declarator")
        )
        name = name or constants.ANON_FUNCTION
        self._functions[name] = self._types.resolve(base, depth)
        self._defined.append(name)

        self._scopes.append({})
        if func_decl is not None:
            self._declare_parameters(func_decl.child_by_field_name("parameters"))
        enclosing = self._current_function
        self._current_function = name
        body = node.child_by_field_name("body")
        if body is not None:
            self._walk(body)
        self._current_function = enclosing
        self._scopes.pop()

    def _declare_parameters(self, params_node):
        if params_node is None:
            return
        for child in params_node.named_children:
            if child.type != "parameter_declaration":
                continue
            decl_node = child.child_by_field_name("declarator")
            if decl_node is None:
                continue
            name, depth, _ = self._unwrap_declarator(decl_node)
            if name:
                base = self._base_type_name(child.child_by_field_name("type"))
                self._declare(name, self._types.resolve(base, depth))

    def _on_declaration(self, node):
        base = self._base_type_name(node.child_by_field_name("type"))
        for decl_node in node.children_by_field_name("declarator"):
            name, depth, func_decl = self._unwrap_declarator(decl_node)
            if name is None:
                continue
            ctype = self._types.resolve(base, depth)
            if func_decl is not None:
                self._functions[name] = ctype
                continue
            self._declare(name, ctype)

    def _on_type_definition(self, node):
        base = self._base_type_name(node.child_by_field_name("type"))
        for decl_node in node.children_by_field_name("declarator"):
            alias, depth, _ = self._unwrap_declarator(decl_node)
            if alias:
                self._types.add_typedef(alias, self._types.resolve(base, depth))

    def _on_enum_specifier(self, node):
        body = node.child_by_field_name("body")
        if body is None:
            return
        next_value = 0
        for enumerator in body.named_children:
            if enumerator.type != "enumerator":
                continue
            name = self._node_text(enumerator.child_by_field_name("name"))
            value_node = enumerator.child_by_field_name("value")
            if value_node is not None:
                value = self._expr(value_node)
                if isinstance(value, Literal) and isinstance(value.value, int):
                    next_value = value.value
                else:
                    logger.debug("Enumerator %s has a non-literal value", name)
            self._enumerators[name] = next_value
            next_value += 1

    def _on_expression_statement(self, node):
        children = self._named_children(node)
        if not children:
            return
        call = children[0]
        if call.type != "call_expression":
            return
        function = call.child_by_field_name("function")
        if function is None or self._node_text(function) not in self._assert_names:
            return
        args = self._named_children(call.child_by_field_name("arguments"))
        if len(args) != 1:
            logger.warning(
                "%s:%d: %s takes one argument; skipped",
                self._filename,
                self._line(call),
                self._node_text(function),
            )
            return
        condition = self._expr(args[0])
        assertion = Assertion(
            condition=condition,
            source_text=normalize_source_text(self._node_text(args[0])),
            info=SourceInfo(
                file=self._filename,
                line=self._line(call),
                function=self._current_function,
            ),
        )
        logger.debug("Found %s at line %d", assertion, assertion.info.line)
        self._assertions.append(assertion)

    # ── types ────────────────────────────────────────────────────

    def _base_type_name(self, type_node) -> str:
        if type_node is None:
            return "int"
        if type_node.type in ("struct_specifier", "union_specifier", "enum_specifier"):
            if type_node.type == "enum_specifier":
                self._on_enum_specifier(type_node)
            name_node = type_node.child_by_field_name("name")
            keyword = type_node.type.split("_")[0]
            return f"{keyword} {self._node_text(name_node) if name_node else '__anon'}"
        return normalize_source_text(self._node_text(type_node))

    def _unwrap_declarator(self, node: Node | None) -> tuple[str | None, int, Node | None]:
        """Name, pointer depth and function declarator (if any) of a declarator."""
        depth = 0
        func_decl = None
        while node is not None:
            if node.type in ("identifier", "type_identifier", "field_identifier"):
                return self._node_text(node), depth, func_decl
            if node.type in (
                "pointer_declarator",
                "abstract_pointer_declarator",
                "array_declarator",
                "abstract_array_declarator",
            ):
                depth += 1
                node = node.child_by_field_name("declarator")
            elif node.type in ("function_declarator", "abstract_function_declarator"):
                func_decl = func_decl or node
                node = node.child_by_field_name("declarator")
            elif node.type == "init_declarator":
                node = node.child_by_field_name("declarator")
            elif node.type == "parenthesized_declarator":
                named = node.named_children
                node = named[0] if named else None
            else:
                return None, depth, func_decl
        return None, depth, func_decl

    def _type_descriptor(self, node) -> CType:
        base = self._base_type_name(node.child_by_field_name("type"))
        _, depth, _ = self._unwrap_declarator(node.child_by_field_name("declarator"))
        return self._types.resolve(base, depth)

    def _static_type(self, expr: Expr) -> CType:
        if isinstance(expr, Arithmetic):
            left, right = self._static_type(expr.left), self._static_type(expr.right)
            if left.is_pointer:
                return left
            if TypeKind.FLOAT in (left.kind, right.kind):
                return DOUBLE
            return INT
        return leaf_type(expr)

    # ── expressions ──────────────────────────────────────────────

    def _expr(self, node) -> Expr:
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler is None:
            logger.warning(
                "%s:%d: unsupported expression '%s' (%s)",
                self._filename,
                self._line(node),
                self._node_text(node),
                node.type,
            )
            return self._opaque(node, "unsupported")
        return handler(node)

    def _opaque(self, node, operator: str, *operands: Expr, ctype: CType = INT) -> Opaque:
        return Opaque(
            kind=node.type,
            text=normalize_source_text(self._node_text(node)),
            type=ctype,
            operator=operator,
            operands=tuple(operands),
        )

    def _expr_paren(self, node) -> Expr:
        return self._expr(self._named_children(node)[0])

    def _expr_identifier(self, node) -> Expr:
        name = self._node_text(node)
        if name == constants.NULL_TOKEN:
            return self._expr_null(node)
        decl = self._lookup(name)
        if decl is not None:
            return Variable(decl)
        if name in self._enumerators:
            return Literal(self._enumerators[name], INT, name)
        if name in self._functions:
            return self._opaque(node, "unsupported", ctype=VOID_POINTER)
        logger.warning(
            "%s:%d: '%s' is not declared; assuming int",
            self._filename,
            self._line(node),
            name,
        )
        return Variable(self._declare(name, INT, scope=0))

    def _expr_null(self, node) -> Expr:
        return Literal(0, VOID_POINTER, constants.NULL_TOKEN)

    def _expr_bool(self, node) -> Expr:
        return Literal(int(node.type == "true"), BOOL, self._node_text(node))

    def _expr_number(self, node) -> Expr:
        return parse_number_literal(self._node_text(node))

    def _expr_char(self, node) -> Expr:
        text = self._node_text(node)
        body = decode_escapes(text[text.index("'") + 1 : text.rindex("'")])
        return Literal(ord(body[0]) if body else 0, CHAR, text)

    def _string_value(self, node) -> str:
        text = self._node_text(node)
        return decode_escapes(text[text.index('"') + 1 : text.rindex('"')])

    def _expr_string(self, node) -> Expr:
        return StringLiteral(self._string_value(node), self._node_text(node))

    def _expr_concatenated_string(self, node) -> Expr:
        parts = [c for c in node.named_children if c.type == "string_literal"]
        return StringLiteral(
            "".join(self._string_value(p) for p in parts),
            normalize_source_text(self._node_text(node)),
        )

    def _expr_binary(self, node) -> Expr:
        op = node.child_by_field_name("operator").type
        left = self._expr(node.child_by_field_name("left"))
        right = self._expr(node.child_by_field_name("right"))
        if op == "&&":
            return LogicalAnd(left, right)
        if op == "||":
            return LogicalOr(left, right)
        if op in COMPARISON_OPS:
            return Comparison(op, left, right)
        if op in ARITHMETIC_OPS:
            return Arithmetic(op, left, right)
        return self._opaque(node, op, left, right, ctype=self._static_type(left))

    def _expr_unary(self, node) -> Expr:
        op = node.child_by_field_name("operator").type
        argument = self._expr(node.child_by_field_name("argument"))
        if op == "-" and isinstance(argument, Literal) and not argument.type.is_pointer:
            return Literal(-argument.value, argument.type, self._node_text(node))
        ctype = INT if op == "!" else self._static_type(argument)
        return self._opaque(node, op, argument, ctype=ctype)

    def _expr_pointer(self, node) -> Expr:
        op = node.child_by_field_name("operator").type
        argument = self._expr(node.child_by_field_name("argument"))
        if op == "&":
            if isinstance(argument, Variable):
                return AddressOf(argument)
            return self._opaque(node, op, argument, ctype=VOID_POINTER)
        pointee = self._static_type(argument).pointee
        return self._opaque(node, "*", argument, ctype=pointee or INT)

    def _expr_update(self, node) -> Expr:
        op = node.child_by_field_name("operator").type
        argument_node = node.child_by_field_name("argument")
        argument = self._expr(argument_node)
        prefix = node.children[0].type == op
        operator = ("pre" if prefix else "post") + op
        return self._opaque(node, operator, argument, ctype=self._static_type(argument))

    def _expr_call(self, node) -> Expr:
        function = node.child_by_field_name("function")
        args = tuple(
            self._expr(a)
            for a in self._named_children(node.child_by_field_name("arguments"))
        )
        if function.type != "identifier" or self._lookup(self._node_text(function)):
            return self._opaque(node, "unsupported", *args)
        name = self._node_text(function)
        if name not in self._functions:
            logger.warning(
                "%s:%d: implicit declaration of function '%s'; assuming int",
                self._filename,
                self._line(node),
                name,
            )
            self._functions[name] = INT
        return Call(name, args, self._functions[name])

    def _expr_cast(self, node) -> Expr:
        ctype = self._type_descriptor(node.child_by_field_name("type"))
        value = self._expr(node.child_by_field_name("value"))
        return self._opaque(node, "cast", value, ctype=ctype)

    def _expr_field(self, node) -> Expr:
        op = node.child_by_field_name("operator").type
        field_name = self._node_text(node.child_by_field_name("field"))
        argument = self._expr(node.child_by_field_name("argument"))
        return self._opaque(node, op + field_name, argument, ctype=UNKNOWN)

    def _expr_subscript(self, node) -> Expr:
        base = self._expr(node.child_by_field_name("argument"))
        index = self._expr(node.child_by_field_name("index"))
        pointee = self._static_type(base).pointee
        return self._opaque(node, "[]", base, index, ctype=pointee or INT)

    def _expr_conditional(self, node) -> Expr:
        cond = self._expr(node.child_by_field_name("condition"))
        then = self._expr(node.child_by_field_name("consequence"))
        otherwise = self._expr(node.child_by_field_name("alternative"))
        return self._opaque(node, "?:", cond, then, otherwise, ctype=self._static_type(then))

    def _expr_comma(self, node) -> Expr:
        left = self._expr(node.child_by_field_name("left"))
        right = self._expr(node.child_by_field_name("right"))
        return self._opaque(node, ",", left, right, ctype=self._static_type(right))

    def _expr_assignment(self, node) -> Expr:
        op = node.child_by_field_name("operator").type
        left = self._expr(node.child_by_field_name("left"))
        right = self._expr(node.child_by_field_name("right"))
        if op != "=":
            binary = op[:-1]
            if binary in ARITHMETIC_OPS:
                right = Arithmetic(binary, left, right)
            else:
                right = Opaque(kind=node.type, operator=binary, operands=(left, right))
        return self._opaque(node, "=", left, right, ctype=self._static_type(left))

    def _expr_sizeof(self, node) -> Expr:
        type_node = node.child_by_field_name("type")
        if type_node is not None:
            ctype = self._type_descriptor(type_node)
        else:
            ctype = self._static_type(self._expr(node.child_by_field_name("value")))
        if ctype.size == 0:
            logger.warning("%s:%d: size of '%s' is unknown", self._filename, self._line(node), ctype)
        size = Literal(ctype.size, UNSIGNED_LONG, str(ctype.size))
        return self._opaque(node, "group", size, ctype=UNSIGNED_LONG)
