import pytest

from shelfscan.core.master_index import build_master_index, code_variants, normalize_code
from shelfscan.core.matcher import match_product
from shelfscan.core.models import MatchKind
from shelfscan.core.models import ProductRecord


def test_normalize_code_strips_non_digits():
    assert normalize_code(" 629-1109 120100 ") == "6291109120100"
    assert normalize_code(None) == ""


def test_code_variants_cover_padding():
    assert code_variants("6291109120100") == ["6291109120100", "06291109120100"]
    assert code_variants("40084701") == ["40084701", "00000040084701", "0000040084701"]
    assert code_variants("16291109120107") == ["16291109120107"]
    assert code_variants("") == []


def test_exact_index_registers_all_aliases(index, catalog):
    panadol = catalog[0]

    for key in ("06291109120100", "6291109120100", "220219715"):
        assert index.exact_by_code[key] is panadol


def test_secondary_codes_share_exact_namespace(index, catalog):
    telfast = catalog[2]

    assert index.by_secondary_code["SKU-TEL180"] is telfast
    assert index.exact_by_code["SKU-TEL180"] is telfast


def test_last_eight_collisions_are_preserved():
    first = ProductRecord("1111111112345678", "First")
    second = ProductRecord("2222222212345678", "Second")

    index = build_master_index([first, second])

    assert index.by_last_eight["12345678"] == (first, second)


def test_short_codes_have_no_last_eight_entry():
    index = build_master_index([ProductRecord("12345", "Short")])

    assert dict(index.by_last_eight) == {}
    assert index.exact_by_code["12345"].display_name == "Short"


def test_records_without_codes_are_dropped():
    index = build_master_index([
        ProductRecord("", "Nameless code"),
        ProductRecord("N/A", "Letters only"),
        ProductRecord("", "Alias only", "RMS-1"),
    ])

    assert [p.display_name for p in index.products] == ["Alias only"]
    assert index.by_secondary_code["RMS-1"].display_name == "Alias only"


def test_duplicate_primary_code_last_write_wins():
    index = build_master_index([
        ProductRecord("40084701", "Old name"),
        ProductRecord("50000001", "Other"),
        ProductRecord("40084701", "New name"),
    ])

    assert [p.display_name for p in index.products] == ["New name", "Other"]
    assert index.exact_by_code["40084701"].display_name == "New name"
    assert len(index.by_last_eight["40084701"]) == 1


def test_index_mappings_are_read_only(index):
    with pytest.raises(TypeError):
        index.exact_by_code["999"] = None


def test_with_product_returns_new_version(index, catalog):
    record = ProductRecord("8901030793912", "Vicks VapoRub 50g", "RMS-77")

    patched = index.with_product(record)

    assert patched is not index
    assert patched.version == index.version + 1
    assert patched.exact_by_code["8901030793912"] is record
    assert patched.by_secondary_code["RMS-77"] is record
    assert patched.by_last_eight["30793912"] == (record,)
    assert patched.products[-1] is record
    # the original index is untouched
    assert "8901030793912" not in index.exact_by_code
    assert len(index.products) == len(catalog)


def test_with_product_replaces_old_registrations(index, catalog):
    renamed = ProductRecord("06291109120100", "Panadol Baby 100ml", "RMS-NEW")

    patched = index.with_product(renamed)

    assert patched.products[0] is renamed
    assert len(patched.products) == len(catalog)
    assert patched.exact_by_code["6291109120100"] is renamed
    assert "220219715" not in patched.exact_by_code
    assert "220219715" not in patched.by_secondary_code
    assert patched.by_last_eight["09120100"] == (renamed,)


def test_without_product(index, catalog):
    patched = index.without_product("40084701")

    assert patched.get("40084701") is None
    assert "40084701" not in patched.exact_by_code
    assert "40084701" not in patched.by_last_eight
    assert len(patched.products) == len(catalog) - 1


def test_without_unknown_product_is_a_no_op(index):
    assert index.without_product("000") is index


def test_rebuild_is_idempotent(catalog):
    first = build_master_index(catalog)
    second = build_master_index(catalog)

    assert dict(first.exact_by_code) == dict(second.exact_by_code)
    assert dict(first.by_last_eight) == dict(second.by_last_eight)
    assert first.products == second.products


def _same_lookups(left, right):
    assert dict(left.exact_by_code) == dict(right.exact_by_code)
    assert dict(left.by_last_eight) == dict(right.by_last_eight)
    assert dict(left.by_secondary_code) == dict(right.by_secondary_code)
    assert left.products == right.products


def test_normalize_code_keeps_only_ascii_digits():
    # Arabic-Indic digits are not barcode digits
    assert normalize_code("٠١٢٣٤٥٦٧٨٩") == ""
    assert normalize_code("12٣45") == "1245"


def test_replaced_duplicate_gives_shared_alias_back():
    first = ProductRecord("11111111", "A", "S-1")
    second = ProductRecord("22222222", "B", "S-1")
    renamed = ProductRecord("22222222", "B renamed")

    expected = build_master_index([first, renamed])
    rebuilt = build_master_index([first, second, renamed])
    patched = build_master_index([first, second]).with_product(renamed)

    _same_lookups(rebuilt, expected)
    _same_lookups(patched, expected)
    for index in (rebuilt, patched):
        result = match_product("S-1", index)
        assert result.match_kind is MatchKind.SECONDARY_CODE
        assert result.product is first


def test_removed_product_gives_shared_alias_back():
    first = ProductRecord("11111111", "A", "S-1")
    second = ProductRecord("22222222", "B", "S-1")

    patched = build_master_index([first, second]).without_product("22222222")

    _same_lookups(patched, build_master_index([first]))
    assert patched.by_secondary_code["S-1"] is first


def test_patched_index_matches_rebuild(catalog):
    added = ProductRecord("8901030793912", "Vicks VapoRub 50g", "220219715")
    renamed = ProductRecord("06291109120100", "Panadol Baby 100ml")

    patched = build_master_index(catalog).with_product(added).with_product(renamed)
    expected = build_master_index([renamed, *catalog[1:], added])

    _same_lookups(patched, expected)


def test_upsert_without_usable_code_drops_the_old_record():
    old = ProductRecord("ABC", "Old", "X-1")

    patched = build_master_index([old]).with_product(ProductRecord("ABC", "New"))

    assert patched.version == 2
    assert patched.products == ()
    assert "X-1" not in patched.exact_by_code
    assert match_product("X-1", patched).match_kind is MatchKind.NONE


def test_upsert_of_new_record_without_code_is_a_no_op(index):
    assert index.with_product(ProductRecord("N/A", "Nothing to index")) is index
