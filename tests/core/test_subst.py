"""
Tests for Template Substitution.
"""

import libcst as cst
import pytest

from cst_refactor.core.bindings import Bindings
from cst_refactor.core.errors import TemplateError, UnboundVariableError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.matcher import match
from cst_refactor.core.parsing import parse_expr, parse_pattern, parse_stmts
from cst_refactor.core.subst import substitute, template_metavars
from cst_refactor.enums import FragmentKind, Origin


def expr(code: str) -> Fragment:
  return Fragment(FragmentKind.EXPR, cst.parse_expression(code))


def test_substitute_expression():
  bindings = Bindings({"__d": expr("cache"), "__k": expr("key")})
  out = substitute(parse_expr("__k in __d"), bindings)
  assert out.code == "key in cache"
  assert out.origin is Origin.SYNTHESIZED


def test_substitute_repeated_variable_is_cloned():
  """Each occurrence gets its own copy of the bound tree."""
  bindings = Bindings({"__x": expr("f(a)")})
  out = substitute(parse_expr("__x + __x"), bindings)
  assert out.code == "f(a) + f(a)"
  assert out.node.left is not out.node.right
  assert out.node.left is not bindings.node("__x")


def test_unbound_variable_raises():
  with pytest.raises(UnboundVariableError) as exc:
    substitute(parse_expr("g(__y)"), Bindings())
  assert exc.value.name == "__y"


def test_compound_binding_is_parenthesized():
  bindings = Bindings({"__a": expr("x + y")})
  out = substitute(parse_expr("__a * 2"), bindings)
  assert out.code == "(x + y) * 2"

  call = substitute(parse_expr("__a.bit_length()"), bindings)
  assert call.code == "(x + y).bit_length()"


def test_argument_binding_not_parenthesized():
  bindings = Bindings({"__a": expr("x + y")})
  assert substitute(parse_expr("f(__a)"), bindings).code == "f(x + y)"


def test_bare_tuple_is_grouped_outside_statement_values():
  bindings = Bindings({"__x": expr("a, b")})
  assert substitute(parse_expr("g(__x)"), bindings).code == "g((a, b))"
  assert substitute(parse_expr("[__x, c]"), bindings).code == "[(a, b), c]"
  assert substitute(parse_stmts("y = __x\n__x"), bindings).code == "y = a, b\na, b\n"


def test_generator_is_grouped_unless_sole_argument():
  generator = cst.parse_expression("f(x for x in xs)").args[0].value
  bindings = Bindings({"__g": Fragment(FragmentKind.EXPR, generator)})
  assert substitute(parse_expr("sum(__g)"), bindings).code == "sum(x for x in xs)"
  assert substitute(parse_expr("max(__g, default=0)"), bindings).code == "max((x for x in xs), default=0)"
  assert substitute(parse_expr("[__g]"), bindings).code == "[(x for x in xs)]"


def test_conditional_operands_are_grouped():
  bindings = Bindings({"__c": expr("a if b else c"), "__f": expr("lambda: 0")})
  out = substitute(parse_expr("1 if __c else __f"), bindings)
  assert out.code == "1 if (a if b else c) else (lambda: 0)"
  cst.parse_expression(out.code)


def test_statement_sequence_splice():
  body = parse_stmts("a()\nb()\n")
  bindings = Bindings({"__m_body": body, "__c": expr("ready")})
  template = parse_stmts("if __c:\n    __m_body\nlog()")
  out = substitute(template, bindings)
  assert out.kind is FragmentKind.STMTS
  assert out.code == "if ready:\n    a()\n    b()\nlog()\n"


def test_empty_sequence_splice():
  bindings = Bindings({"__m_body": Fragment(FragmentKind.STMTS, ())})
  out = substitute(parse_stmts("__m_body"), bindings)
  assert out.nodes == ()


def test_expression_statement_from_expression_binding():
  """A lone ``__x`` statement bound to an expression becomes an expression statement."""
  bindings = Bindings({"__x": expr("run()")})
  out = substitute(parse_stmts("__x"), bindings)
  assert out.code == "run()\n"


def test_sequence_in_expression_position_fails():
  bindings = Bindings({"__x": parse_stmts("a()\n")})
  with pytest.raises(TemplateError):
    substitute(parse_expr("f(__x)"), bindings)


def test_expression_into_pattern_position():
  bindings = Bindings({"__v": expr("Color.RED")})
  out = substitute(parse_pattern("Paint(color=__v)"), bindings)
  assert out.code == "Paint(color=Color.RED)"
  assert isinstance(out.node.kwds[0].pattern, cst.MatchValue)


def test_match_then_substitute_roundtrip():
  pattern = parse_expr("__d.has_key(__k)")
  bindings = match(pattern, expr("d.has_key(1)"))
  assert substitute(parse_expr("__k in __d"), bindings).code == "1 in d"


def test_template_metavars():
  assert template_metavars(parse_expr("f(__x, y.__a, __init__)")) == {"__x", "__a"}
  assert template_metavars(parse_stmts("__m_body\nreturn __r")) == {"__m_body", "__r"}
