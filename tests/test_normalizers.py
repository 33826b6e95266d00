from cityscraper.normalizers import classify_info_lines, clean_text, is_address, is_phone


def test_classify_info_lines_picks_phone_and_address() -> None:
    lines = [
        "  12 Rue de la République, 69002 Lyon  ",
        "Ouvert 24h/24",
        "04 78 00 00 00",
        "restaurant-exemple.fr",
    ]

    phone, address = classify_info_lines(lines)

    assert phone == "04 78 00 00 00"
    assert address == "12 Rue de la République, 69002 Lyon"


def test_classify_info_lines_handles_international_prefix_and_country() -> None:
    phone, address = classify_info_lines(["+33 4 78 00 00 00", "Place Bellecour, France", None, ""])

    assert phone == "+33 4 78 00 00 00"
    assert address == "Place Bellecour, France"


def test_classify_info_lines_returns_empty_strings_when_missing() -> None:
    assert classify_info_lines(["Ouvert", "Menu"]) == ("", "")


def test_predicates() -> None:
    assert is_phone("06 12 34 56 78") is True
    assert is_phone("00 12") is False
    assert is_address("75001 Paris") is True
    assert is_address("Paris") is False
    assert clean_text(None) == ""
    assert clean_text("  Le  Bistrot ") == "Le  Bistrot"
