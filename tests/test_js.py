"""Tests for the JavaScript minifier and its semicolon insertion."""

import logging

import pytest

from markup_compressor import js
from markup_compressor.js import Token, minify_js, strip_comments, tokenize
from markup_compressor.levels import CompressionLevel

BASIC = CompressionLevel.BASIC
AGGRESSIVE = CompressionLevel.AGGRESSIVE
EXTREME = CompressionLevel.EXTREME


class TestTokenize:
    def test_literals_are_single_tokens(self):
        tokens = tokenize("a = 'x  y' + `t ${b}`")
        assert Token("string", "'x  y'") in tokens
        assert Token("template", "`t ${b}`") in tokens

    def test_newline_whitespace(self):
        kinds = [token.kind for token in tokenize("a \n b")]
        assert kinds == ["word", "newline", "word"]

    def test_increment_is_one_token(self):
        assert Token("punct", "++") in tokenize("i++")


class TestStripComments:
    def test_comment_becomes_space(self):
        tokens = strip_comments(tokenize("a/* c */b"), AGGRESSIVE)
        assert tokens == [Token("word", "a"), Token("space", " "), Token("word", "b")]

    def test_multiline_comment_becomes_newline(self):
        tokens = strip_comments(tokenize("a/* c\n d */b"), AGGRESSIVE)
        assert tokens[1] == Token("newline", "\n")

    def test_basic_keeps_bang_comment(self):
        tokens = strip_comments(tokenize("/*! license */a"), BASIC)
        assert tokens[0] == Token("comment", "/*! license */")

    def test_aggressive_strips_bang_comment(self):
        tokens = strip_comments(tokenize("/*! license */a"), AGGRESSIVE)
        assert all(token.kind != "comment" for token in tokens)


class TestSemicolonInsertion:
    @pytest.mark.parametrize("source,expected", [
        ("x=1\nconst y=2", "x=1;const y=2"),
        ("if(x){a()}\nelse{b()}", "if(x){a()}else{b()}"),
        ("do{a()}\nwhile(x)", "do{a()}while(x)"),
        ("doSomething()\nconst r=1", "doSomething();const r=1"),
        ("var a=1\n(function(){})()", "var a=1;(function(){})()"),
        ("var a=1\n(async function(){})()", "var a=1;(async function(){})()"),
        ("a = b\n++c", "a=b;++c"),
        ("i++\nj--", "i++;j--"),
        ("a = 1\n!b && c()", "a=1;!b&&c()"),
        ("x = 'a'\ny = 2", "x='a';y=2"),
    ])
    def test_fixture_table(self, source: str, expected: str):
        assert minify_js(source, EXTREME) == expected

    @pytest.mark.parametrize("source,expected", [
        ("if(a){b()}\nelse if(c){d()}", "if(a){b()}else if(c){d()}"),
        ("try{a()}\ncatch{b()}", "try{a()}catch{b()}"),
        ("try{a()}\ncatch(e){b()}\nfinally{c()}", "try{a()}catch(e){b()}finally{c()}"),
        ("await something()\nexport default foo", "await something();export default foo"),
        ("function* g(){\n  a()\n  yield 1\n}", "function*g(){a();yield 1}"),
        ("obj?.method()?.prop\nconst y=2", "obj?.method()?.prop;const y=2"),
        ("const a = [1, 2]\nlet b = 3", "const a=[1,2];let b=3"),
        ("x = y\n'use strict'", "x=y;'use strict'"),
        ("a = b\n--c", "a=b;--c"),
        ("const f = () => {}\nf()", "const f=()=>{};f()"),
        ("switch (x) {\n  case 1:\n    a()\n    break\n  default:\n    b()\n}",
         "switch(x){case 1:a();break;default:b()}"),
        ("const o = {\n  a,\n  b\n}\nexport { o }", "const o={a,b};export{o}"),
    ])
    def test_statement_boundaries(self, source: str, expected: str):
        assert minify_js(source, EXTREME) == expected

    @pytest.mark.parametrize("source,expected", [
        ("const React = require('react').default\nconst x = 1", "const React=require('react').default;const x=1"),
        ("const v = cache.get\nfoo()", "const v=cache.get;foo()"),
        ("x = 1\nfrom = 2", "x=1;from=2"),
        ("let to = from\nconsole.log(to)", "let to=from;console.log(to)"),
        ("node.static\nrun()", "node.static;run()"),
        ("options?.as\nrun()", "options?.as;run()"),
        ("let of = 1\nof++", "let of=1;of++"),
        ("const f = async\nf()", "const f=async;f()"),
    ])
    def test_contextual_words_as_identifiers(self, source: str, expected: str):
        assert minify_js(source, AGGRESSIVE) == expected

    def test_property_named_like_a_header_keyword(self):
        assert minify_js("arr.with(0, 1)\nfoo()", EXTREME) == "arr.with(0,1);foo()"

    @pytest.mark.parametrize("source,expected", [
        ("import a from\n'mod'\nrun()", "import a from'mod';run()"),
        ("import x, { a }\nfrom 'mod'", "import x,{a}from'mod'"),
        ("import {\n  a\n  as b\n} from 'mod'", "import{a as b}from'mod'"),
        ("export * as\nns from 'mod'", "export*as ns from'mod'"),
    ])
    def test_module_clause_words(self, source: str, expected: str):
        assert minify_js(source, EXTREME) == expected

    def test_class_body_modifiers(self):
        source = "class A {\n  static\n  make() {}\n  get\n  size() { return 1 }\n}"
        assert minify_js(source, EXTREME) == "class A{static make(){};get size(){return 1}}"

    def test_class_modifier_outside_class_is_identifier(self):
        source = "class A {}\nlet set = new Set()\nset\nrun()"
        assert minify_js(source, EXTREME) == "class A{};let set=new Set();set;run()"

    def test_for_await_braceless_body(self):
        source = "async function r(){\n  for await (const a of xs)\n    await a()\n}"
        assert minify_js(source, EXTREME) == "async function r(){for await(const a of xs)await a()}"

    def test_for_header_split_across_lines(self):
        source = "for (const k of\n  keys)\n  use(k)"
        assert minify_js(source, EXTREME) == "for(const k of keys)use(k)"

    def test_default_level_inserts_without_space(self):
        result = minify_js("x=1\nconst y=2")
        assert "1;const" in result
        assert "1const" not in result

    def test_else_after_block_gets_no_semicolon(self):
        assert "};else" not in minify_js("if(x){a()}\nelse{b()}")

    def test_do_while_gets_no_semicolon(self):
        assert "};while" not in minify_js("do{a()}\nwhile(x)")

    def test_while_after_plain_block_is_new_statement(self):
        assert minify_js("if(a){b()}\nwhile(c){d()}", EXTREME) == "if(a){b()};while(c){d()}"

    def test_statement_after_do_while_condition(self):
        source = "do {\n  i++\n}\nwhile (i < 3)\nfinish()"
        assert minify_js(source, EXTREME) == "do{i++}while(i<3);finish()"

    def test_try_catch_finally(self):
        source = "try {\n  a()\n}\ncatch (e) {\n  b()\n}\nfinally {\n  c()\n}"
        assert minify_js(source, EXTREME) == "try{a()}catch(e){b()}finally{c()}"

    def test_braceless_if_else(self):
        source = "if (ok)\n  run()\nelse\n  stop()"
        assert minify_js(source, EXTREME) == "if(ok)run();else stop()"

    @pytest.mark.parametrize("header", ["if (a)", "for (;;)", "while (a)"])
    def test_no_semicolon_after_control_header(self, header: str):
        result = minify_js(f"{header}\n  go()", EXTREME)
        assert result.endswith(")go()")

    def test_restricted_return(self):
        source = "function f(){\n  return\n  42\n}"
        assert minify_js(source, EXTREME) == "function f(){return;42}"

    def test_return_before_brace(self):
        assert minify_js("function f(){\n  return\n}", EXTREME) == "function f(){return}"

    def test_object_literal_across_lines(self):
        source = "var o = {\n  a: 1,\n  b: 2\n}\nfoo()"
        assert minify_js(source, EXTREME) == "var o={a:1,b:2};foo()"

    def test_method_chain_across_lines(self):
        source = "promise\n  .then(a)\n  .catch(b)"
        assert minify_js(source, EXTREME) == "promise.then(a).catch(b)"

    def test_call_continuation_is_not_split(self):
        assert minify_js("foo()\n(bar)", EXTREME) == "foo()(bar)"

    def test_binary_operator_continuation(self):
        assert minify_js("total = a\n  + b\n  - c", EXTREME) == "total=a+b-c"

    def test_infix_keyword_continuation(self):
        source = "import { a }\nfrom 'mod'\nfor (const k\nof keys) {}"
        assert minify_js(source, EXTREME) == "import{a}from'mod';for(const k of keys){}"

    def test_tagged_template_continuation(self):
        assert minify_js("html\n`<p>`", EXTREME) == "html`<p>`"

    def test_callback_argument_is_not_split(self):
        source = "observer = new IntersectionObserver(function (entries) {\n  run(entries)\n})"
        result = minify_js(source, EXTREME)
        assert result == "observer=new IntersectionObserver(function(entries){run(entries)})"
        assert ";(" not in result

    def test_allman_braces(self):
        source = "function f()\n{\n  return 1\n}\nclass A\n{\n}"
        assert minify_js(source, EXTREME) == "function f(){return 1};class A{}"

    def test_keyword_spacing_below_extreme(self):
        assert minify_js("let a=1\nlet b=2", AGGRESSIVE, keyword_spacing=True) == "let a=1; let b=2"
        assert minify_js("let a=1\nlet b=2", EXTREME, keyword_spacing=True) == "let a=1;let b=2"

    def test_keyword_spacing_only_before_keywords(self):
        assert minify_js("a()\nb()", AGGRESSIVE, keyword_spacing=True) == "a();b()"


class TestWhitespace:
    @pytest.mark.parametrize("source,expected", [
        ("var  a = b", "var a=b"),
        ("a - -b", "a- -b"),
        ("a + +b", "a+ +b"),
        ("a++ + b", "a++ +b"),
        ("1 .toString()", "1 .toString()"),
        ("typeof x === 'string'", "typeof x==='string'"),
        ("return /x/.test(s)", "return/x/.test(s)"),
        ("x = /a/ instanceof RegExp", "x=/a/ instanceof RegExp"),
    ])
    def test_separators(self, source: str, expected: str):
        assert minify_js(source, EXTREME) == expected

    def test_comments_removed(self):
        source = "a = 1 // one\n/* two */\nb = 2"
        assert minify_js(source, EXTREME) == "a=1;b=2"

    def test_comment_between_words_keeps_separation(self):
        assert minify_js("var/* c */a", EXTREME) == "var a"

    def test_basic_keeps_lines(self):
        source = "  var a = 1;   // c\n\n\n  var b = 2;\n"
        assert minify_js(source, BASIC) == "var a = 1;\nvar b = 2;"

    def test_basic_keeps_bang_comment(self):
        assert minify_js("/*! license */\nvar a", BASIC) == "/*! license */\nvar a"

    def test_empty(self):
        assert minify_js("", EXTREME) == ""


class TestLiteralIntegrity:
    def test_string_contents_untouched(self):
        source = 'var s = "a  //  b /* c */  d"\nvar t = \'  x  \''
        result = minify_js(source, EXTREME)
        assert '"a  //  b /* c */  d"' in result
        assert "'  x  '" in result

    def test_template_contents_untouched(self):
        source = "const t = `a  ${ b }  c`\nlet z = 1"
        assert minify_js(source, EXTREME) == "const t=`a  ${ b }  c`;let z=1"

    def test_regex_contents_untouched(self):
        source = "x = str.replace(/ +\\/\\/ +/g, ' ')"
        assert minify_js(source, EXTREME) == "x=str.replace(/ +\\/\\/ +/g,' ')"

    def test_regex_ending_statement(self):
        assert minify_js("var re = /[/]+/g\nvar n = 1", EXTREME) == "var re=/[/]+/g;var n=1"

    def test_division_is_not_regex(self):
        source = "a / b + c / i.test(str)\nconst x = 1"
        assert minify_js(source, EXTREME) == "a/b+c/i.test(str);const x=1"

    @pytest.mark.parametrize("level", [BASIC, AGGRESSIVE, EXTREME])
    def test_literals_survive_every_level(self, level):
        literals = ['"  spaced  "', "'/* x */'", "`  ${ '}' }  `", "/ a+ /g"]
        source = "\n".join(f"v{i} = {literal}" for i, literal in enumerate(literals))
        result = minify_js(source, level)
        for literal in literals:
            assert literal in result


class TestLevels:
    @pytest.mark.parametrize("level", [CompressionLevel.NONE, CompressionLevel.AUTO])
    def test_no_op_levels(self, level):
        source = "var a = 1\n"
        assert minify_js(source, level) is source

    def test_size_monotonic(self):
        source = """
        // Counter animation
        var counters = document.querySelectorAll('.card strong')
        var template = `Total: ${counters.length} counters`

        function animate(el) {
            var target = parseInt(el.textContent.replace(/,/g, ''), 10)
            var step = target / 60
            var current = 0
            do {
                current += step
                el.textContent = Math.round(current).toLocaleString()
            }
            while (current < target)
            return el
        }

        counters.forEach(animate)
        console.log(template)
        """
        sizes = [len(minify_js(source, level)) for level in (BASIC, AGGRESSIVE, EXTREME)]
        assert sizes == sorted(sizes, reverse=True)


class TestFailSafe:
    def test_returns_original_on_error(self, monkeypatch, caplog):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(js, "strip_comments", boom)
        source = "var a = 1\nvar b = 2"
        with caplog.at_level(logging.WARNING, logger="markup_compressor.js"):
            assert minify_js(source, AGGRESSIVE) == source
        assert "JS minification failed" in caplog.text
        assert "RuntimeError" in caplog.text
