from __future__ import annotations

from corehosts.domain.corefile import Block, Body, Document, Line, parse, serialize

COREFILE = """\
.:53 {
    errors
    kubernetes cluster.local in-addr.arpa ip6.arpa {
       pods insecure
       fallthrough in-addr.arpa ip6.arpa
    }
    template IN A "example.org" {
        answer "{{ .Name }} 60 IN A 127.0.0.1"
    }
    forward . /etc/resolv.conf
}

example.org:53 {
    # comment
    whoami
}
"""


def test_serialize_uses_four_space_indentation_and_blank_line_between_blocks() -> None:
    document = Document(
        blocks=(
            Block(
                keys=(".:53",),
                lines=(
                    Line.of("errors"),
                    Line.of("hosts", "/etc/x/hosts", Body(lines=(Line.of("fallthrough"),))),
                ),
            ),
            Block(keys=("example.org:53",), lines=(Line.of("whoami"),)),
        )
    )

    assert serialize(document) == (
        ".:53 {\n"
        "    errors\n"
        "    hosts /etc/x/hosts {\n"
        "        fallthrough\n"
        "    }\n"
        "}\n"
        "\n"
        "example.org:53 {\n"
        "    whoami\n"
        "}\n"
    )


def test_serialize_quotes_tokens_that_would_not_survive_a_reparse() -> None:
    line = Line.of("template", "a b", "", "#x", "{", 'say "hi"', "C:\\x", "plain")
    document = Document(blocks=(Block(keys=(".:53",), lines=(line,)),))

    text = serialize(document)

    assert 'template "a b" "" "#x" "{" "say \\"hi\\"" "C:\\\\x" plain' in text
    assert parse(text) == document


def test_serialize_empty_body() -> None:
    document = Document(blocks=(Block(keys=(".:53",), lines=(Line.of("hosts", Body()),)),))

    assert serialize(document) == ".:53 {\n    hosts {\n    }\n}\n"


def test_round_trip_preserves_structure() -> None:
    parsed = parse(COREFILE)

    assert parse(serialize(parsed)) == parsed


def test_round_trip_is_stable_after_first_pass() -> None:
    first = serialize(parse(COREFILE))

    assert serialize(parse(first)) == first
