"""Tests for code generation: coalescing, folding and generated source."""

from __future__ import annotations

import ast

import pytest

from benchpress import Environment
from benchpress.compiler import Compiler
from benchpress.environment.exceptions import CompileError, ErrorCode
from benchpress.lexer import tokenize
from benchpress.parser import Parser


def generated(source: str, env: Environment | None = None) -> ast.FunctionDef:
    compiler = Compiler(env)
    compiler.compile(Parser(tokenize(source)).parse(), name="t")
    (func,) = compiler.module.body
    return func


def appends(func: ast.FunctionDef) -> list[ast.Call]:
    return [
        node
        for node in ast.walk(func)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "_append"
    ]


class TestRenderFunction:
    def test_signature(self):
        func = generated("x")
        assert func.name == "render"
        assert [a.arg for a in func.args.args] == ["_frame", "_helpers"]

    def test_string_builder_shape(self):
        func = generated("x")
        assert isinstance(func.body[0], ast.Assign)
        assert isinstance(func.body[-1], ast.Return)
        assert "''.join(buf)" in ast.unparse(func.body[-1])

    def test_empty_template(self, env):
        assert env.from_string("").render() == ""

    def test_instances_carry_only_declared_state(self):
        compiler = Compiler()
        assert not hasattr(compiler, "__dict__")
        with pytest.raises(AttributeError):
            compiler.scratch = 1

    def test_reused_compiler_numbers_loops_from_scratch(self):
        source = "{{{ each a }}}{{{ each b }}}{@value}{{{ end }}}{{{ end }}}"
        root = Parser(tokenize(source)).parse()
        compiler = Compiler()
        compiler.compile(root, name="t")
        first = ast.unparse(compiler.module)
        compiler.compile(root, name="t")
        assert ast.unparse(compiler.module) == first


class TestCoalescing:
    def test_text_and_outputs_single_append(self):
        func = generated("Hello {name}, you have {count} messages")
        calls = appends(func)
        assert len(calls) == 1
        assert isinstance(calls[0].args[0], ast.JoinedStr)

    def test_static_literal_folded_into_text(self):
        func = generated('a{"<b>"}c')
        (call,) = appends(func)
        assert isinstance(call.args[0], ast.Constant)
        assert call.args[0].value == "a&lt;b&gt;c"

    def test_static_conditional_folded(self):
        func = generated('x{{{ if "on" }}}y{{{ else }}}n{{{ end }}}z')
        (call,) = appends(func)
        assert call.args[0].value == "xyz"
        assert not any(isinstance(node, ast.If) for node in ast.walk(func))

    def test_dynamic_conditional_not_folded(self):
        func = generated("x{{{ if a }}}y{{{ end }}}z")
        assert any(isinstance(node, ast.If) for node in ast.walk(func))
        assert len(appends(func)) == 3

    def test_helper_calls_break_runs(self):
        func = generated("a{upper(x)}b")
        assert len(appends(func)) == 3

    def test_statically_true_else_if_becomes_else(self):
        func = generated('{{{ if a }}}A{{{ else if "y" }}}B{{{ else }}}C{{{ end }}}')
        ifs = [node for node in ast.walk(func) if isinstance(node, ast.If)]
        assert len(ifs) == 1
        assert "'C'" not in ast.unparse(func)

    def test_statically_false_branch_dropped(self):
        func = generated('{{{ if "" }}}A{{{ else if b }}}B{{{ end }}}')
        ifs = [node for node in ast.walk(func) if isinstance(node, ast.If)]
        assert len(ifs) == 1
        assert "'A'" not in ast.unparse(func)


class TestLookups:
    def test_relative_lookup(self):
        assert "_lookup(_frame, ('user', 'name'))" in ast.unparse(generated("{user.name}"))

    def test_root_lookup(self):
        assert "_lookup_root(_frame, ('site',))" in ast.unparse(generated("{@root.site}"))

    def test_parent_lookup(self):
        assert "_lookup_at(_frame, 1, ('x',))" in ast.unparse(generated("{../x}"))

    def test_loop_prefix_rewritten(self):
        source = ast.unparse(generated("{{{ each items }}}{items.name}{{{ end }}}"))
        assert "_lookup_at(_frame, 0, ('name',))" in source

    def test_innermost_loop_prefix_wins(self):
        func = generated("{{{ each a }}}{{{ each b }}}{a.x}|{b.y}{{{ end }}}{{{ end }}}")
        lookups = [
            (node.args[1].value, node.args[2].value)
            for node in ast.walk(func)
            if isinstance(node, ast.Call)
            and isinstance(node.func, ast.Name)
            and node.func.id == "_lookup_at"
        ]
        assert sorted(lookups) == [(0, ("y",)), (1, ("x",))]

    def test_innermost_loop_prefix_renders(self, env):
        source = "{{{ each a }}}{{{ each b }}}{a.x}{b.y};{{{ end }}}{{{ end }}}"
        context = {"a": [{"x": 1, "b": [{"y": 2}, {"y": 3}]}]}
        assert env.from_string(source).render(context) == "12;13;"

    def test_collection_itself_not_rewritten(self):
        source = ast.unparse(generated("{{{ each items }}}{items}{{{ end }}}"))
        assert "_lookup(_frame, ('items',))" in source


class TestLineMarkers:
    def test_plain_output_has_no_marker(self):
        assert "_get_render_ctx" not in ast.unparse(generated("{a}{b}"))

    def test_helper_call_marked(self):
        source = ast.unparse(generated("\n\n{upper(a)}"))
        assert "_get_render_ctx().line = 3" in source

    def test_partial_marked(self):
        assert "_get_render_ctx().line = 1" in ast.unparse(generated("{{{ import x }}}"))


class TestHelperArity:
    def test_wrong_arity_rejected(self):
        env = Environment(helpers={"pair": lambda a, b: a + b})
        with pytest.raises(CompileError) as exc_info:
            env.from_string("{pair(x)}", name="t")
        err = exc_info.value
        assert err.code is ErrorCode.HELPER_ARITY
        assert "expects 2" in str(err)

    def test_defaults_and_varargs_accepted(self):
        env = Environment(helpers={"fmt": lambda value, *rest: value})
        env.from_string('{fmt(a)}{fmt(a, "b", "c")}')
        env.from_string("{join(a)}{join(a, b)}")

    def test_too_many_for_builtin(self):
        env = Environment()
        with pytest.raises(CompileError):
            env.from_string("{length(a, b)}")

    def test_unknown_helper_compiles(self):
        # Helpers are late bound; a missing one fails only at render time
        Environment().from_string("{later(a)}")

    def test_uninspectable_helper_skips_check(self):
        env = Environment(helpers={"maxof": max})
        env.from_string("{maxof(a)}")

    def test_render_override_with_same_arity(self):
        env = Environment(helpers={"greet": lambda name: f"hi {name}"})
        template = env.from_string("{greet(who)}")
        html = template.render({"who": "ann"}, helpers={"greet": lambda name: f"hola {name}"})
        assert html == "hola ann"

    def test_render_only_helper_is_not_checked(self):
        template = Environment().from_string("{shout(a, b)}")

        def shout(*args):
            return "!".join(args)

        html = template.render({"a": "x", "b": "y"}, helpers={"shout": shout})
        assert html == "x!y"


class TestToSource:
    def test_to_source_is_valid_python(self, env):
        source = env.from_string("{{{ each xs as x }}}{x}{{{ end }}}").to_source()
        ast.parse(source)
        assert source.startswith("def render(_frame, _helpers):")

    def test_deterministic(self, env):
        text = "Hi {name}{{{ if a }}}{join(b)}{{{ end }}}"
        assert env.from_string(text).to_source() == env.from_string(text).to_source()

    def test_loop_templates_deterministic(self, env):
        text = "{{{ each items }}}{@value}{{{ if !@last }}},{{{ end }}}{{{ end }}}"
        first = env.from_string(text)
        assert first.render({"items": ["a", "b"]}) == "a,b"
        assert env.from_string(text).to_source() == first.to_source()
