import pytest

from pgproto.catalog import DatParser, parse_errcodes, parse_types, snake_to_camel

TYPE_DAT = """
# built-in types
[
{ oid => '16', array_type_oid => '1000',
  descr => 'boolean, \\'true\\'/\\'false\\'',
  typname => 'bool', typcategory => 'B' },
{ oid => '23', array_type_oid => '1007',
  descr => 'integer', typname => 'int4', typcategory => 'N' },
{ oid => '3904', array_type_oid => '3905', descr => 'range of integers',
  typname => 'int4range', typcategory => 'R' },
{ oid => '2249', typname => 'record', typcategory => 'P' },
{ oid => '71', typname => 'pg_type', typcategory => 'C' },
{ oid => '3500', typname => 'anyenum', typcategory => 'E' },
]
"""

RANGE_DAT = """[
{ rngtypid => 'int4range', rngsubtype => 'int4' },
]
"""

ERRCODES = """# comment line
Section: Class 00 - Successful Completion

00000    S    ERRCODE_SUCCESSFUL_COMPLETION                                  successful_completion
01000    W    ERRCODE_WARNING                                                warning
2F002    E    ERRCODE_S_R_E_MODIFYING_SQL_DATA_NOT_PERMITTED                 modifying_sql_data_not_permitted
2F002    E    ERRCODE_ALIAS_NAME                                             alias
"""


@pytest.fixture
def types():
    return parse_types(TYPE_DAT, RANGE_DAT)


def test_snake_to_camel():
    assert snake_to_camel("foo_bar") == "FooBar"


@pytest.mark.parametrize("name", ["a_b_c", "int4_range", "already", "_leading", "x__y"])
def test_snake_to_camel_drops_underscores(name):
    out = snake_to_camel(name)
    assert "_" not in out
    assert len(out) == len(name) - name.count("_")
    assert out[0].isupper() or not out[0].isalpha()


def test_dat_parser_objects():
    text = "[ # c\n{ oid => '16', typname => 'bool' },\n{ oid => '17', typname => 'bytea' },\n]"
    assert DatParser(text).parse_array() == [
        {"oid": "16", "typname": "bool"},
        {"oid": "17", "typname": "bytea"},
    ]


def test_dat_parser_escapes():
    result = DatParser("[{ descr => 'it\\'s \\\\ ok' },]").parse_array()
    assert result == [{"descr": "it's \\ ok"}]


def test_dat_parser_empty_array():
    assert DatParser("  [ ]  # trailing comment").parse_array() == []


@pytest.mark.parametrize(
    "text",
    [
        "[{ oid => '16' }]",
        "[{ oid => '16' },] extra",
        "[{ oid => '16 },]",
        "{ oid => '16' },",
        "[{ oid = '16' },]",
        "",
    ],
)
def test_dat_parser_errors(text):
    with pytest.raises(ValueError):
        DatParser(text).parse_array()


def test_parse_errcodes_order_and_names():
    codes = parse_errcodes(ERRCODES)
    assert list(codes) == ["00000", "01000", "2F002"]
    assert codes["00000"] == ["SUCCESSFUL_COMPLETION"]
    assert codes["01000"] == ["WARNING"]
    assert codes["2F002"] == ["S_R_E_MODIFYING_SQL_DATA_NOT_PERMITTED", "ALIAS_NAME"]


def test_parse_errcodes_malformed():
    with pytest.raises(ValueError):
        parse_errcodes("00000 S\n")


def test_parse_types_keys_sorted(types):
    assert list(types) == sorted(types)
    assert set(types) == {16, 23, 1000, 1007, 2249, 3904, 3905}
    assert all(t.oid == oid for oid, t in types.items())


def test_parse_types_skips_composite_and_enum(types):
    assert 71 not in types
    assert 3500 not in types


def test_parse_types_arrays(types):
    bool_array = types[1000]
    assert bool_array.kind == "A"
    assert bool_array.element == 16
    assert bool_array.name == "_bool"
    assert bool_array.variant == types[16].variant + "Array"
    assert bool_array.ident == types[16].ident + "_ARRAY"
    assert bool_array.doc.endswith("&#91;&#93;")


def test_parse_types_range(types):
    rng = types[3904]
    assert rng.kind == "R"
    assert rng.element == 23
    assert rng.variant == "Int4Range"
    assert rng.ident == "INT4_RANGE"
    assert types[3905].element == 3904


def test_parse_types_simple_and_pseudo(types):
    assert types[16].element == 0
    assert types[16].kind == "B"
    assert types[2249].kind == "P"
    assert types[2249].element == 0


def test_parse_types_doc_escaped(types):
    doc = types[16].doc
    assert "'" not in doc
    assert "&#39;" in doc
    assert doc.startswith(types[16].name.upper())


def test_parse_types_missing_range_subtype():
    with pytest.raises(KeyError):
        parse_types(TYPE_DAT, "[{ rngtypid => 'int4range', rngsubtype => 'nope' },]")