import pytest

from app.csv_io import (
    assemble_record,
    detect_delimiter,
    format_number,
    parse_csv,
    serialize_csv,
    split_rows,
    tokenize_delimited_line,
)
from app.models import Character, NewCharacter
from app.rules import CANONICAL_HEADERS, NUMERIC_FIELDS

SCENARIO = (
    "name,type,release,str_init,str_mul_in,chinese\n"
    "Itachi,S-Rank,Fire,20,0.85,TRUE\n"
    ",Blue,Water,5,0.2,FALSE\n"
    "Sakura,Orange,Earth,,1.1,yes\n"
)


def test_scenario_drops_nameless_row():
    records = parse_csv(SCENARIO)

    assert [r.name for r in records] == ["Itachi", "Sakura"]

    itachi, sakura = records
    assert itachi.type == "S-Rank"
    assert itachi.release == "Fire"
    assert itachi.str_init == 20
    assert itachi.str_mul_in == pytest.approx(0.85)
    assert itachi.chinese is True
    assert itachi.agi_init == 0
    assert itachi.bmv_sta == 0
    assert itachi.record == ""
    assert itachi.image == ""

    assert sakura.str_init == 0
    assert sakura.str_mul_in == pytest.approx(1.1)
    assert sakura.chinese is True


def test_empty_and_header_only_documents():
    assert parse_csv("") == []
    assert parse_csv("name,type\n") == []
    assert parse_csv("name,type\n\n   \n") == []


def test_blank_lines_are_skipped_and_crlf_handled():
    text = "name,type\r\n\r\nA,Blue\r\n   \r\nB,Grey\r\n"
    assert split_rows(text) == ["name,type", "A,Blue", "B,Grey"]
    assert [r.name for r in parse_csv(text)] == ["A", "B"]


def test_whitespace_name_rows_are_excluded():
    text = "name,type\n   ,Blue\nNaruto,Orange\n\"  \",Grey\n"
    assert [r.name for r in parse_csv(text)] == ["Naruto"]


def test_semicolon_header_selects_semicolon():
    assert detect_delimiter("name;type;release") == ";"
    records = parse_csv("name;type;release;str_init\nGaara;Kages;Earth;18\n")
    assert records[0].name == "Gaara"
    assert records[0].type == "Kages"
    assert records[0].str_init == 18


def test_comma_header_wins_over_later_semicolons():
    assert detect_delimiter("name,type,release") == ","
    assert detect_delimiter("name;type,release") == ","
    assert detect_delimiter("name") == ","

    records = parse_csv("name,type,release\nKakashi;Hatake,Legends,Lightning\n")
    assert records[0].name == "Kakashi;Hatake"


def test_single_column_file_is_not_redirected():
    # The only column is "character", which maps to name.
    assert [r.name for r in parse_csv("Character\nZabuza\n")] == ["Zabuza"]
    # Any other lone column never yields a name.
    assert parse_csv("code\n1/2/1\n") == []


def test_tokenizer_quotes_protect_delimiters():
    assert tokenize_delimited_line('"Uchiha, Sasuke", S-Rank , Fire') == ["Uchiha, Sasuke", "S-Rank", "Fire"]
    assert tokenize_delimited_line("a;b", ";") == ["a", "b"]
    assert tokenize_delimited_line("a,,") == ["a", "", ""]
    assert tokenize_delimited_line("") == [""]


def test_tokenizer_drops_escaped_quotes():
    # Each quote flips the state, so doubled quotes vanish.
    assert tokenize_delimited_line('"Say ""hi""",x') == ["Say hi", "x"]


def test_short_and_long_rows_are_tolerated():
    text = "name,type,release,str_init\nShort,Blue\nLong,Grey,Wind,3,extra,values\n"
    short, long_ = parse_csv(text)
    assert short.release == "Wind"
    assert short.str_init == 0
    assert long_.str_init == 3


def test_defaults_applied_for_missing_columns():
    record = parse_csv("name\nHinata\n")[0]
    assert record.type == "Grey"
    assert record.release == "Wind"
    assert record.record == "" and record.image == "" and record.pimage == ""
    assert record.chinese is False
    for field in NUMERIC_FIELDS:
        assert getattr(record, field) == 0


def test_unknown_headers_and_id_column_are_ignored():
    record = parse_csv("id,name,rarity,Element\nabc,Neji,rare,Taijutsu\n")[0]
    assert record.name == "Neji"
    assert record.release == "Taijutsu"
    assert "rarity" not in record.model_dump()
    assert "id" not in record.model_dump()


def test_unrecognized_tiers_pass_through():
    record = parse_csv("name,type,release\nMadara,Godlike,Wood\n")[0]
    assert record.type == "Godlike"
    assert record.release == "Wood"


def test_assemble_record_requires_name():
    assert assemble_record(["type", "str_init"], ["Blue", "4"]) is None
    record = assemble_record(["name", "str_init"], ["Lee", "+12 pts"])
    assert record.str_init == 12


def test_serialize_header_and_cells():
    record = Character(
        id="1",
        record="1/2/1",
        name='Ggio "Tiger" Vega',
        type="Grey",
        release="Wind",
        str_init=13,
        str_mul_in=0.65,
        chinese=False,
    )
    lines = serialize_csv([record]).split("\n")

    assert lines[0] == ",".join(CANONICAL_HEADERS)
    cells = lines[1].split(",")
    assert cells[0] == '"1/2/1"'
    assert cells[1] == '"Ggio ""Tiger"" Vega"'
    assert cells[6] == "13"
    assert cells[9] == "0.65"
    assert cells[-1] == "FALSE"
    assert len(lines) == 2


def test_serialize_empty_sequence_is_header_only():
    assert serialize_csv([]) == ",".join(CANONICAL_HEADERS)


def test_round_trip_preserves_fields():
    originals = [
        NewCharacter(
            record="3/1/2",
            name="Itachi",
            type="S-Rank",
            release="Fire",
            str_init=20,
            agi_init=25,
            sta_init=15,
            str_mul_in=0.85,
            agi_mul_in=1.35,
            sta_mul_in=0.7,
            bmv_str=17,
            bmv_agi=10,
            bmv_sta=14,
            chinese=True,
        ),
        NewCharacter(name="Sakura", type="Orange", release="Earth", sta_mul_in=1.1),
    ]

    parsed = parse_csv(serialize_csv(originals))

    assert len(parsed) == 2
    for original, result in zip(originals, parsed):
        assert result.model_dump().keys() == original.model_dump().keys()
        for field in CANONICAL_HEADERS:
            if field in NUMERIC_FIELDS:
                assert getattr(result, field) == pytest.approx(getattr(original, field))
            else:
                assert getattr(result, field) == getattr(original, field)


def test_format_number_never_writes_exponents():
    assert format_number(0.00005) == "0.00005"
    assert format_number(1.5e-07) == "0.00000015"
    assert format_number(17.0) == "17"
    assert format_number(float("inf")) == "0"


def test_round_trip_keeps_tiny_multipliers():
    original = NewCharacter(name="Ghost", str_mul_in=0.00005, agi_mul_in=1e-05)

    (parsed,) = parse_csv(serialize_csv([original]))

    assert parsed.str_mul_in == pytest.approx(0.00005)
    assert parsed.agi_mul_in == pytest.approx(1e-05)
