from grove.services.config_service import apply_config_updates, get_config_snapshot


def test_apply_config_updates_reports_changes(temp_config_home):
    result = apply_config_updates(
        forester_path="/opt/forester",
        show_id=True,
        extensions=["tree"],
        exclude_patterns=["output/"],
    )

    assert result.changed is True
    assert result.forester_path_set
    assert result.show_id_set
    assert result.extensions_set
    assert result.exclude_patterns_set
    assert not result.forest_config_set
    assert not result.random_ids_set

    snapshot = get_config_snapshot()
    assert snapshot.forester_path == "/opt/forester"
    assert snapshot.show_id is True
    assert snapshot.exclude_patterns == ("output/",)


def test_apply_config_updates_clears_lists(temp_config_home):
    apply_config_updates(extensions=["md"], exclude_patterns=["output/"])

    result = apply_config_updates(clear_extensions=True, clear_exclude_patterns=True)

    assert result.extensions_cleared
    assert result.exclude_patterns_cleared
    snapshot = get_config_snapshot()
    assert snapshot.extensions == (".tree",)
    assert snapshot.exclude_patterns == ()


def test_apply_config_updates_noop(temp_config_home):
    result = apply_config_updates()

    assert result.changed is False
    assert not temp_config_home.exists()
