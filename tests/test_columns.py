import pytest

from molecule_import.columns import (
    DEFAULT_COLUMNS,
    ColumnKind,
    ColumnSpec,
    hierarchy_level,
    match_title,
    resolve_column,
)


def test_match_title_requires_full_header():
    spec = ColumnSpec("MTE", "ntr", ColumnKind.UNIQUE)
    assert match_title(spec, "MTE")
    assert match_title(spec, "  mte ")
    assert not match_title(spec, "MTE_COMMENT")
    assert not match_title(spec, "XMTE")


def test_resolve_column_follows_declared_order():
    assert resolve_column("DCI").property == "dci"
    assert resolve_column("SYSTEME_2").property == "systems"
    assert resolve_column("CLASSE_PHARMA_1").property == "classes"
    assert resolve_column("INDICATION_2").property == "indications"
    assert resolve_column("EFFET_INDESIRABLE").property == "side_effects"
    assert resolve_column("COMMENTAIRE") is None

    first = ColumnSpec(r"NAME.*", "first", ColumnKind.UNIQUE)
    second = ColumnSpec(r"NAME_X", "second", ColumnKind.UNIQUE)
    assert resolve_column("NAME_X", [first, second]) is first


def test_kind_predicates():
    kinds = {spec.property: spec for spec in DEFAULT_COLUMNS}
    assert kinds["dci"].is_unique()
    assert kinds["systems"].is_hierarchical()
    assert kinds["interactions"].is_multi_valued()
    assert not kinds["interactions"].is_unique()


def test_hierarchy_level_reads_captured_index():
    spec = resolve_column("SYSTEME_3")
    assert hierarchy_level(spec, "SYSTEME_3") == 3

    with pytest.raises(ValueError):
        hierarchy_level(resolve_column("DCI"), "DCI")
