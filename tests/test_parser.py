import asyncio
import io
from pathlib import Path

import pytest

from molecule_import.errors import ColumnContractError, MalformedRowError, MoleculeImportError
from molecule_import.parser import parse_molecules_csv, parse_molecules_csv_async, split_values

DATA_DIR = Path(__file__).parent / "data"
SAMPLE_CSV = DATA_DIR / "molecules.csv"

HEADER = "DCI,FORMULE_CHIMIQUE,SYSTEME_1,SYSTEME_2,CLASSE_PHARMA_1,MTE,INDICATION,NIVEAU_EXPERT"


def write_csv(tmp_path: Path, *rows: str, header: str = HEADER) -> Path:
    path = tmp_path / "molecules.csv"
    path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return path


def test_parse_sample_export():
    dataset = parse_molecules_csv(SAMPLE_CSV)

    assert [m.dci for m in dataset.molecules] == ["amiodarone", "digoxine", "furosemide", "paracetamol"]
    assert [m.id for m in dataset.molecules] == [1, 2, 3, 4]
    assert len(dataset.systems) == 6
    assert len(dataset.classes) == 7
    assert [v.name for v in dataset.interactions] == ["warfarine", "digoxine", "amiodarone"]
    assert [v.name for v in dataset.indications] == [
        "fibrillation auriculaire",
        "tachycardie ventriculaire",
        "insuffisance cardiaque",
        "oedème",
        "douleur",
        "fièvre",
    ]
    assert len(dataset.side_effects) == 6


def test_rows_point_at_deepest_classification_node():
    dataset = parse_molecules_csv(SAMPLE_CSV)
    by_dci = {m.dci: m for m in dataset.molecules}

    assert dataset.systems.path_of(by_dci["furosemide"].system) == ["Cardio", "HeartFailure", "Oedeme"]
    # CLASSE_PHARMA_2 is blank for digoxine, so its class stops at level 1
    assert dataset.classes.path_of(by_dci["digoxine"].class_) == ["Digitaliques"]
    assert by_dci["amiodarone"].level_hard is True
    assert by_dci["digoxine"].level_easy is True
    assert by_dci["paracetamol"].ntr is None


def test_multi_valued_cells_resolve_to_shared_local_ids():
    dataset = parse_molecules_csv(SAMPLE_CSV)
    by_dci = {m.dci: m for m in dataset.molecules}

    assert by_dci["amiodarone"].properties["indications"] == [1, 2]
    assert by_dci["digoxine"].properties["indications"] == [3, 1]
    assert by_dci["furosemide"].properties["interactions"] == []


def test_blank_level_stops_nesting(tmp_path):
    path = write_csv(
        tmp_path,
        "a,,Cardio,,Antalgiques,,,",
        "b,,Cardio,Arrhythmia,Antalgiques,,,",
    )
    dataset = parse_molecules_csv(path)
    assert dataset.systems.path_of(dataset.molecules[0].system) == ["Cardio"]
    assert len(dataset.systems) == 2


def test_row_without_classification_has_no_node(tmp_path):
    dataset = parse_molecules_csv(write_csv(tmp_path, "a,,,,,,,"))
    assert dataset.molecules[0].system is None
    assert dataset.molecules[0].class_ is None


def test_non_numeric_mte_aborts_parse(tmp_path):
    path = write_csv(tmp_path, "a,,Cardio,,X,1,,", "b,,Cardio,,X,abc,,")
    with pytest.raises(MalformedRowError) as excinfo:
        parse_molecules_csv(path)
    assert excinfo.value.row_number == 2
    assert excinfo.value.column == "MTE"


def test_unregistered_columns_are_ignored(tmp_path):
    path = write_csv(tmp_path, "a,1,,,", header="DCI,MTE,COMMENTAIRE,SOURCE,INDICATION")
    dataset = parse_molecules_csv(path)
    assert dataset.molecules[0].ntr == 1
    assert dataset.molecules[0].skeletal_formula == ""


def test_repeated_multi_valued_columns_are_merged(tmp_path):
    path = write_csv(
        tmp_path,
        "a,douleur;fièvre,douleur",
        header="DCI,INDICATION_1,INDICATION_2",
    )
    dataset = parse_molecules_csv(path)
    assert [v.name for v in dataset.indications] == ["douleur", "fièvre"]
    assert dataset.molecules[0].properties["indications"] == [1, 2]


def test_hierarchy_levels_sorted_by_captured_index(tmp_path):
    path = write_csv(tmp_path, "a,Arrhythmia,Cardio", header="DCI,SYSTEME_2,SYSTEME_1")
    dataset = parse_molecules_csv(path)
    assert dataset.systems.path_of(dataset.molecules[0].system) == ["Cardio", "Arrhythmia"]


@pytest.mark.parametrize(
    "header",
    [
        "FORMULE_CHIMIQUE,MTE",
        "DCI,DCI,MTE",
        "DCI,SYSTEME_1,SYSTEME_1",
    ],
)
def test_header_contract_violations(tmp_path, header):
    path = write_csv(tmp_path, ",".join(["x"] * len(header.split(","))), header=header)
    with pytest.raises(ColumnContractError):
        parse_molecules_csv(path)


def test_empty_file_is_rejected(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ColumnContractError):
        parse_molecules_csv(path)


def test_blank_rows_are_skipped(tmp_path):
    path = write_csv(tmp_path, "a,,,,,,,", ",,,,,,,", "b,,,,,,,")
    dataset = parse_molecules_csv(path)
    assert [m.dci for m in dataset.molecules] == ["a", "b"]
    assert [m.id for m in dataset.molecules] == [1, 2]


def test_custom_delimiter_and_separator_from_stream():
    text = "DCI|INDICATION\na|douleur, fièvre\n"
    dataset = parse_molecules_csv(io.StringIO(text), delimiter="|", value_separator=",")
    assert [v.name for v in dataset.indications] == ["douleur", "fièvre"]


def test_split_values_drops_blanks_and_repeats():
    assert split_values(" a ; ;b;a ") == ["a", "b"]
    assert split_values("") == []


def test_async_parse_matches_sync_parse():
    dataset = asyncio.run(parse_molecules_csv_async(SAMPLE_CSV))
    assert dataset.to_dict() == parse_molecules_csv(SAMPLE_CSV).to_dict()


def test_to_dict_uses_camel_case_document_keys():
    document = parse_molecules_csv(SAMPLE_CSV).to_dict()
    assert set(document) == {"classes", "systems", "sideEffects", "indications", "interactions", "molecules"}
    assert document["systems"][0]["name"] == "Cardio"
    assert [child["name"] for child in document["systems"][0]["children"]] == ["Arrhythmia", "HeartFailure"]

    molecule = document["molecules"][0]
    assert {"skeletalFormula", "levelEasy", "levelHard", "sideEffects", "indications", "interactions"} <= set(molecule)
    assert "side_effects" not in molecule


def test_ragged_row_is_a_contract_error(tmp_path):
    path = tmp_path / "ragged.csv"
    path.write_text("DCI,MTE\na,1,\n", encoding="utf-8")
    with pytest.raises(MoleculeImportError) as excinfo:
        parse_molecules_csv(path)
    assert isinstance(excinfo.value, ColumnContractError)


def test_hierarchy_levels_with_gap_are_rejected(tmp_path):
    path = write_csv(tmp_path, "a,X,Z", header="DCI,SYSTEME_1,SYSTEME_3")
    with pytest.raises(ColumnContractError, match="without gaps"):
        parse_molecules_csv(path)


def test_hierarchy_levels_must_start_at_one(tmp_path):
    path = write_csv(tmp_path, "a,X", header="DCI,CLASSE_PHARMA_2")
    with pytest.raises(ColumnContractError):
        parse_molecules_csv(path)
