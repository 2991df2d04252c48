import json

import pytest

from devtooling.collapse import (
    CollapseOptions,
    CollapseSummary,
    build_repository_objects,
    collapse_records,
    compare_metadata,
    main,
    merge_group_records,
)

OPTIONS = CollapseOptions(id_field="id", metadata_field="t")


def collapse(records):
    return collapse_records(records, OPTIONS)


def test_end_to_end_default_fields():
    records = [
        {"id": "p1", "last_metadata_update": "2024-06-01", "name": "Foo", "repositories": [{"url": "https://x"}]},
        {"id": "p1", "last_metadata_update": "2024-01-01", "name": "Old"},
    ]

    result = collapse_records(records)

    assert result.collapsed == [
        {"id": "p1", "last_metadata_update": "2024-06-01", "name": "Foo", "repositories": [{"url": "https://x"}]}
    ]
    assert result.summary == CollapseSummary(
        total_records=2, unique_ids=1, used_records=1, merged_records=0,
        missing_id=0, missing_metadata=0, older_records_skipped=1,
    )


def test_empty_input():
    result = collapse([])
    assert result.collapsed == []
    assert result.summary == CollapseSummary()


def test_freshest_record_wins():
    result = collapse([
        {"id": "a", "t": "2023-01-01", "v": 1},
        {"id": "a", "t": "2024-01-01", "v": 2},
    ])

    assert result.collapsed == [{"id": "a", "t": "2024-01-01", "v": 2}]
    assert result.summary.older_records_skipped == 1


def test_newer_record_discards_whole_group():
    result = collapse([
        {"id": "a", "t": 1, "v": "x"},
        {"id": "a", "t": 1, "v": "y"},
        {"id": "a", "t": 2, "v": "z"},
    ])

    assert result.collapsed == [{"id": "a", "t": 2, "v": "z"}]
    assert result.summary.older_records_skipped == 2
    assert result.summary.used_records == 1


def test_sql_style_timestamp_compared_in_time():
    result = collapse_records([
        {"id": "a", "last_metadata_update": "2024-06-01T11:00:00Z", "v": "old"},
        {"id": "a", "last_metadata_update": "2024-06-01 12:00:00 UTC", "v": "new"},
    ])

    assert result.collapsed == [{"id": "a", "last_metadata_update": "2024-06-01 12:00:00 UTC", "v": "new"}]
    assert result.summary.older_records_skipped == 1


def test_same_instant_written_differently_is_not_merged():
    result = collapse([
        {"id": "a", "t": "2024-01-01T00:00:00Z", "v": "kept"},
        {"id": "a", "t": "2024-01-01", "v": "dropped"},
    ])

    assert result.collapsed == [{"id": "a", "t": "2024-01-01T00:00:00Z", "v": "kept"}]
    assert result.summary.older_records_skipped == 1
    assert result.summary.merged_records == 0


def test_equal_freshness_merges_fields():
    result = collapse([
        {"id": "a", "t": "T", "tag": "x"},
        {"id": "a", "t": "T", "tag": "y"},
    ])

    assert result.collapsed == [{"id": "a", "t": "T", "tag": ["x", "y"]}]
    assert result.summary.merged_records == 1
    assert result.summary.used_records == 2


def test_duplicate_values_stay_scalar():
    result = collapse([
        {"id": "a", "t": "T", "tag": "x"},
        {"id": "a", "t": "T", "tag": "x"},
    ])
    assert result.collapsed == [{"id": "a", "t": "T", "tag": "x"}]


def test_list_values_are_flattened_and_deduplicated():
    result = collapse([
        {"id": "a", "t": "T", "tags": ["defi", "zk"]},
        {"id": "a", "t": "T", "tags": ["zk", "", None, "rust"]},
    ])
    assert result.collapsed[0]["tags"] == ["defi", "zk", "rust"]


def test_objects_deduplicated_regardless_of_key_order():
    result = collapse([
        {"id": "a", "t": "T", "meta": {"x": 1, "y": 2}},
        {"id": "a", "t": "T", "meta": {"y": 2, "x": 1}},
    ])
    assert result.collapsed[0]["meta"] == {"x": 1, "y": 2}


def test_empty_values_keep_existing():
    result = collapse([
        {"id": "a", "t": "T", "note": "kept", "blank": None},
        {"id": "a", "t": "T", "note": "  "},
    ])
    assert result.collapsed[0]["note"] == "kept"
    assert result.collapsed[0]["blank"] == []


def test_output_follows_first_seen_order():
    result = collapse([
        {"id": "b", "t": "T"},
        {"id": "a", "t": "T"},
        {"id": "b", "t": "T"},
    ])
    assert [record["id"] for record in result.collapsed] == ["b", "a"]


def test_missing_id_and_metadata_are_counted():
    result = collapse([
        {"t": "T", "v": 1},
        "not an object",
        {"id": "a", "t": ""},
        {"id": "a", "t": None},
        {"id": "a"},
        {"id": "a", "t": "T"},
    ])

    assert result.summary.missing_id == 2
    assert result.summary.missing_metadata == 3
    assert result.summary.unique_ids == 1
    assert result.collapsed == [{"id": "a", "t": "T"}]


def test_numeric_and_string_ids_share_identity():
    result = collapse([{"id": 1, "t": "T"}, {"id": "1", "t": "T"}])
    assert result.summary.unique_ids == 1
    assert result.collapsed[0]["id"] == [1, "1"]


def test_compound_ids_compare_structurally():
    result = collapse([{"id": {"k": 1}, "t": "T", "v": "a"}, {"id": {"k": 1.0}, "t": "T", "v": "b"}])
    assert result.summary.unique_ids == 1
    assert result.collapsed == [{"id": {"k": 1}, "t": "T", "v": ["a", "b"]}]


def test_internal_keys_are_dropped():
    result = collapse([{"id": "a", "t": "T", "_dlt_id": "abc", "_dlt_load_id": "1"}])
    assert result.collapsed == [{"id": "a", "t": "T"}]


def test_collapse_is_idempotent():
    records = [
        {"id": "a", "t": "T", "tag": "x", "repo_url": ["u1", "u2"], "repo_stars": 5},
        {"id": "a", "t": "T", "tag": ["y", "z"], "repositories": [{"url": "u1", "stars": 7}]},
        {"id": "b", "t": "2024-02-01", "name": "B"},
        {"id": "b", "t": "2024-01-01", "name": "Old B"},
    ]
    once = collapse(records).collapsed
    twice = collapse(json.loads(json.dumps(once))).collapsed
    assert twice == once


def test_repository_fields_are_zipped():
    result = collapse([{"id": "a", "t": "T", "repo_url": ["u1", "u2"], "repo_stars": 5}])
    assert result.collapsed[0]["repositories"] == [{"url": "u1", "stars": 5}, {"url": "u2", "stars": 5}]
    assert "repo_url" not in result.collapsed[0]


def test_repositories_merged_by_url():
    result = collapse([
        {"id": "a", "t": "T", "repositories": [{"url": "u1", "stars": 1, "_dlt_id": "x"}]},
        {"id": "a", "t": "T", "repo_url": "u1", "repo_stars": 2},
        {"id": "a", "t": "T", "repositories": {"url": "u2"}},
    ])
    assert result.collapsed[0]["repositories"] == [{"url": "u1", "stars": [1, 2]}, {"url": "u2"}]


def test_repository_key_falls_back_to_id_type_and_content():
    record = merge_group_records([
        {"repositories": [{"id": "r1", "name": "a"}, {"id": "r1", "name": "b"}]},
        {"repositories": [{"type": "github", "stars": 1}, {"type": "github", "stars": 1}]},
        {"repositories": [{"stars": 3}, {"stars": 3}, {"stars": 4}, "junk"]},
    ])
    assert record["repositories"] == [
        {"id": "r1", "name": ["a", "b"]},
        {"type": "github", "stars": 1},
        {"stars": 3},
        {"stars": 4},
    ]


def test_empty_repositories_are_omitted():
    record = merge_group_records([{"id": "a", "repositories": [], "repo_url": [None, ""]}])
    assert record == {"id": "a"}


def test_build_repository_objects_uneven_lengths():
    repositories = build_repository_objects({"url": ["u1", "u2", "u3"], "name": ["n1", "n2"], "owner": "o"})
    assert repositories == [
        {"url": "u1", "name": "n1", "owner": "o"},
        {"url": "u2", "name": "n2", "owner": "o"},
        {"url": "u3", "owner": "o"},
    ]


@pytest.mark.parametrize(
    ("next_value", "current_value", "expected"),
    [
        ("2024-01-01", "2023-12-31", 1),
        ("2023-12-31", "2024-01-01", -1),
        ("2024-01-01", "2024-01-01", 0),
        ("2024-06-01 12:00:00 UTC", "2024-06-01T11:00:00Z", 1),
        ("Sat, 01 Jun 2024 10:00:00 GMT", "2024-06-01T11:00:00Z", -1),
        ("2024-06-01T12:00:00.000000001Z", "2024-06-01T11:59:59Z", 1),
        ("2024-01-01", "2024-01-01T00:00:00Z", -1),  # same instant, compared as strings
        (10, 9, 1),
        (9, 10, -1),
        ("v2", "v10", 1),  # not dates, compared as strings
        ("b", "a", 1),
        ("same", "same", 0),
    ],
)
def test_compare_metadata(next_value, current_value, expected):
    assert compare_metadata(next_value, current_value) == expected


def test_main_writes_output_and_summary(tmp_path, capsys):
    input_path = tmp_path / "results.json"
    input_path.write_text(json.dumps([
        {"id": "p1", "last_metadata_update": "2024-06-01", "name": "Foo"},
        {"id": "p1", "last_metadata_update": "2024-01-01", "name": "Old"},
        {"name": "no id"},
    ]), encoding="utf-8")

    assert main([str(input_path)]) == 0

    output_path = tmp_path / "results.collapsed.json"
    assert json.loads(output_path.read_text(encoding="utf-8")) == [
        {"id": "p1", "last_metadata_update": "2024-06-01", "name": "Foo"}
    ]
    out = capsys.readouterr().out
    assert "Collapsed records written to" in out
    assert output_path.name in out
    assert "Total input records: 3" in out
    assert "Unique ids: 1" in out
    assert "Records skipped (missing id): 1" in out
    assert "Records skipped (older last_metadata_update): 1" in out


def test_main_custom_fields_and_funding(tmp_path, capsys):
    input_path = tmp_path / "projects.ndjson"
    input_path.write_text(
        '{"slug": "p1", "seen": 2, "name": "Foo"}\n{"slug": "p2", "seen": 1}\n', encoding="utf-8"
    )
    funding_path = tmp_path / "funding.json"
    funding_path.write_text(json.dumps([
        {"id": "f1", "project_id": "p1", "amount": "100", "round_id": "5"},
        {"id": "f2", "project_id": "p2", "amount": 0, "round_id": "5"},
    ]), encoding="utf-8")
    rewards_path = tmp_path / "rewards.json"
    rewards_path.write_text(json.dumps([
        {"project_id": "p2", "amount": 42, "round_id": "7"},
    ]), encoding="utf-8")
    output_path = tmp_path / "out.json"

    code = main([
        str(input_path), str(output_path), "slug", "seen", str(funding_path), str(rewards_path),
    ])

    assert code == 0
    assert json.loads(output_path.read_text(encoding="utf-8")) == [
        {"slug": "p1", "seen": 2, "name": "Foo",
         "selfReportedFunding": [{"amount": "100", "round_id": "5"}]},
        {"slug": "p2", "seen": 1, "opRewards": [{"amount": 42, "round_id": "7"}]},
    ]
    assert "Records skipped (missing slug): 0" in capsys.readouterr().out


def test_main_missing_input(tmp_path):
    output_path = tmp_path / "out.json"
    assert main([str(tmp_path / "missing.json"), str(output_path)]) == 1
    assert not output_path.exists()


def test_main_malformed_input(tmp_path):
    input_path = tmp_path / "bad.json"
    input_path.write_text("{not json", encoding="utf-8")
    assert main([str(input_path)]) == 1
    assert not (tmp_path / "bad.collapsed.json").exists()


def test_main_bad_funding_dataset_aborts(tmp_path):
    input_path = tmp_path / "results.json"
    input_path.write_text('[{"id": "a", "last_metadata_update": "x"}]', encoding="utf-8")
    output_path = tmp_path / "out.json"

    code = main([str(input_path), str(output_path), "id", "last_metadata_update", str(tmp_path / "nope.json")])

    assert code == 1
    assert not output_path.exists()


def test_main_requires_input_path():
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code != 0
