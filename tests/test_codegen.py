from app.codegen import SEED_ENTRY, render_outfit, render_outfits, resource_name
from app.models import NewCharacter


def test_resource_name_drops_whitespace():
    assert resource_name("Rock  Lee\t Jr") == "RockLeeJr"


def test_render_outfits_starts_with_seed_entry():
    code = render_outfits([])
    assert code == SEED_ENTRY
    assert 'name = "Ggio Vega"' in code


def test_render_outfit_fields():
    record = NewCharacter(
        record="3/ 1 /2",
        name="Rock Lee",
        type="Grey",
        release="Taijutsu",
        str_init=14,
        agi_init=21.5,
        sta_init=12,
        str_mul_in=0.654,
        agi_mul_in=1.1,
        sta_mul_in=0.5,
        bmv_str=17,
        bmv_agi=10,
        bmv_sta=14,
    )
    code = render_outfit(record, 1)

    assert "id = 1," in code
    assert "record = new int[3] { 3, 1, 2 }," in code
    assert 'name = "Rock Lee",' in code
    assert "image = Resources.RockLee," in code
    assert "pimage = Resources.PRockLee," in code
    assert 'release = "Taijutsu",' in code
    assert "str_init = 14," in code
    assert "agi_init = 21.5," in code
    assert "str_mul_init = 0.65," in code
    assert "agi_mul_init = 1.1," in code
    assert "bmv_sta = 14\n}," in code


def test_render_outfit_defaults_for_empty_values():
    code = render_outfit(NewCharacter(name="Blank", release=""), 3)

    assert "record = new int[3] { 0, 0, 0 }," in code
    assert 'release = "None",' in code
    assert "str_init = 10," in code
    assert "sta_mul_init = 0," in code
    assert "bmv_agi = 15," in code


def test_generated_ids_start_after_seed():
    code = render_outfits([NewCharacter(name="A"), NewCharacter(name="B")])
    assert code.startswith(SEED_ENTRY + "\n")
    assert "id = 1," in code and "id = 2," in code
    assert code.index('name = "A"') < code.index('name = "B"')
