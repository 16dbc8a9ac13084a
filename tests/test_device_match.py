from pulsettoctl.core.device_match import advertised_name, name_matches_prefix


def test_prefix_match() -> None:
    assert name_matches_prefix("Pulsetto_A1B2", "Pulsetto")
    assert name_matches_prefix("Pulsetto", "Pulsetto")


def test_prefix_is_case_sensitive_and_anchored() -> None:
    assert not name_matches_prefix("pulsetto_a1b2", "Pulsetto")
    assert not name_matches_prefix("My Pulsetto", "Pulsetto")


def test_missing_name_never_matches() -> None:
    assert not name_matches_prefix(None, "Pulsetto")
    assert not name_matches_prefix("", "Pulsetto")


def test_advertised_name_prefers_local_name() -> None:
    assert advertised_name("cached", "Pulsetto_X") == "Pulsetto_X"
    assert advertised_name("Pulsetto_Y", None) == "Pulsetto_Y"
    assert advertised_name(None, None) is None
