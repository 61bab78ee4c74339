from promo_crawler.extract import (
    extract_count,
    find_snippet,
    focus_text,
    html_to_text,
    mentions_keyword,
)

KW = ["Aktionsartikel"]


def test_number_before_keyword():
    assert extract_count("Es wurden 37 Aktionsartikel gefunden", KW) == 37


def test_keyword_before_number():
    assert extract_count("Aktionsartikel: 12", KW) == 12


def test_above_ceiling_is_not_found():
    assert extract_count("Es wurden 9999 Aktionsartikel gefunden", KW) is None
    assert extract_count("Es wurden 9999 Aktionsartikel gefunden", KW, max_fallback=True) is None


def test_custom_ceiling():
    assert extract_count("600 Aktionsartikel", KW, max_value=500) is None
    assert extract_count("600 Aktionsartikel", KW, max_value=1000) == 600


def test_thousands_separator_in_text():
    assert extract_count("1.234 Aktionsartikel gefunden", KW) == 1234


def test_keyword_priority_order():
    text = "5 Produkte\n12 Aktionsartikel"
    assert extract_count(text, ["Aktionsartikel", "Produkte"]) == 12
    assert extract_count(text, ["Produkte", "Aktionsartikel"]) == 5


def test_previous_line():
    assert extract_count("37\nAktionsartikel gefunden", KW) == 37


def test_next_line():
    assert extract_count("Aktionsartikel\n42", KW) == 42


def test_skips_year_in_same_line_for_nearer_number():
    assert extract_count("Angebote ab 01.12.2025: 14 Aktionsartikel", KW) == 14


def test_largest_number_fallback_only_when_enabled():
    text = "Unsere Aktionsartikel\nalle Angebote\nKategorie\nab 19 Uhr 250 Stück"
    assert extract_count(text, KW) is None
    assert extract_count(text, KW, max_fallback=True) == 250


def test_largest_number_fallback_needs_keyword():
    assert extract_count("Seite 3 von 12", KW, max_fallback=True) is None


def test_empty_input():
    assert extract_count("", KW) is None
    assert extract_count("37 Aktionsartikel", []) is None


def test_html_to_text_drops_scripts_and_splits_blocks():
    markup = (
        "<html><body><div><h1>Angebote</h1>"
        "<p>Es wurden <b>37</b> Aktionsartikel gefunden</p>"
        "<script>var total = 99;</script></div></body></html>"
    )
    text = html_to_text(markup)
    assert "Es wurden 37 Aktionsartikel gefunden" in text.splitlines()
    assert "99" not in text
    assert extract_count(text, KW) == 37


def test_focus_text_reads_heading_and_next_sibling():
    markup = (
        "<html><body><nav>2025 Menü</nav>"
        "<h1>Aktionen</h1><div class='count'>8 Aktionsartikel</div>"
        "<footer>Seite 1</footer></body></html>"
    )
    text = focus_text(markup)
    assert "Aktionen" in text
    assert "8 Aktionsartikel" in text
    assert "Menü" not in text


def test_snippet_and_mentions():
    text = "x" * 300 + " 37 Aktionsartikel gefunden"
    snippet = find_snippet(text, KW)
    assert snippet.endswith("37 Aktionsartikel gefunden")
    assert len(snippet) <= 120 + len("Aktionsartikel") + 120
    assert mentions_keyword("AKTIONSARTIKEL", KW)
    assert find_snippet("nothing here", KW) is None
