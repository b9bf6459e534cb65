import pytest

from gambabot.commands import Param, ParamType, parse_args


def test_integer_consumes_leading_digits():
    arg, rest = Param("n", ParamType.INTEGER).parse("123 something else")
    assert arg.present and arg.value == 123
    assert arg.type is ParamType.INTEGER
    assert rest == "something else"


def test_boolean_words():
    arg, rest = Param("flag", ParamType.BOOLEAN).parse("enabled blah")
    assert arg.present and arg.value is True
    assert rest == "blah"

    arg, rest = Param("flag", ParamType.BOOLEAN).parse("off")
    assert arg.present and arg.value is False
    assert rest == ""


def test_boolean_requires_whole_token():
    text = "onward march"
    arg, rest = Param("flag", ParamType.BOOLEAN).parse(text)
    assert not arg.present
    assert rest == text


@pytest.mark.parametrize("text", ["ON x", "True", "Disabled"])
def test_boolean_words_are_case_sensitive(text):
    arg, rest = Param("flag", ParamType.BOOLEAN).parse(text)
    assert not arg.present
    assert rest == text


@pytest.mark.parametrize("type_", list(ParamType))
@pytest.mark.parametrize("text", ["", "   "])
def test_empty_input_consumes_nothing(type_, text):
    arg, rest = Param("x", type_).parse(text)
    assert not arg.present
    assert arg.type is type_
    assert rest == text


@pytest.mark.parametrize("text", ["abc 12", "", "   ", "-5", "99999999999999999999"])
def test_integer_failure_consumes_nothing(text):
    arg, rest = Param("n", ParamType.INTEGER).parse(text)
    assert not arg.present
    assert arg.value is None
    assert rest == text


def test_integer_max_int64_accepted():
    arg, _ = Param("n", ParamType.INTEGER).parse(str(2**63 - 1))
    assert arg.present and arg.value == 2**63 - 1


def test_integer_rejects_non_ascii_digits():
    arg, rest = Param("n", ParamType.INTEGER).parse("²3")
    assert not arg.present
    assert rest == "²3"


def test_username_drops_at_sign():
    arg, rest = Param("user", ParamType.USERNAME).parse("  @Bob 10")
    assert arg.value == "Bob"
    assert rest == "10"

    arg, rest = Param("user", ParamType.USERNAME).parse("@ 10")
    assert not arg.present
    assert rest == "@ 10"


def test_string_and_variadic():
    arg, rest = Param("word", ParamType.STRING).parse("hello big world")
    assert arg.value == "hello"
    assert rest == "big world"

    arg, rest = Param("text", ParamType.VARIADIC).parse("  hello big world ")
    assert arg.value == "hello big world "
    assert rest == ""


def test_parse_args_returns_one_arg_per_param():
    params = [
        Param("user", ParamType.USERNAME, required=True),
        Param("amount", ParamType.INTEGER, required=True),
    ]
    args = parse_args(params, "@bob lots")
    assert len(args) == 2
    assert args[0].present and args[0].value == "bob"
    assert not args[1].present

    assert [a.present for a in parse_args(params, "")] == [False, False]


def test_usage_fragments():
    assert Param("user", ParamType.USERNAME, required=True).usage_fragment() == "<user>"
    assert Param("flag", ParamType.BOOLEAN).usage_fragment() == "[on|off]"
    assert Param("amount", usage="amount|all", required=True).usage_fragment() == "<amount|all>"
