from schrijfcoach import section_parser
from schrijfcoach.section_parser import (
    calculate_text_similarity,
    distribute_content,
    extract_keywords,
    find_content_boundaries,
    levenshtein_distance,
    parse_by_headers,
    parse_by_keywords,
    parse_sections,
    parse_word_count,
)

INTRO = "Klimaatverandering raakt iedereen. In dit betoog laat ik zien waarom de overheid nu moet ingrijpen."
METHOD = "Ik heb drie bronnen vergeleken: een rapport van het KNMI, een krantenartikel en een interview."
ENDING = "Kortom, wie nu niets doet, betaalt later de rekening. Daarom pleit ik voor strengere regels."

SECTIONS = [
    {"id": "inleiding", "title": "Inleiding"},
    {"id": "methode", "title": "Methode"},
    {"id": "conclusie", "title": "Conclusie"},
]


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("slot", "slot") == 0


def test_text_similarity():
    assert calculate_text_similarity("inleiding", "inleiding") == 1.0
    assert calculate_text_similarity("", "") == 1.0
    assert calculate_text_similarity("inleiding:", "inleiding") == 0.9
    assert calculate_text_similarity("methode", "conclusie") < 0.6


def test_extract_keywords_skips_short_and_stop_words():
    keywords = extract_keywords("De inleiding van het verslag", "Beschrijf de aanleiding")
    assert keywords == ["inleiding", "verslag", "beschrijf", "aanleiding"]


def test_parse_word_count():
    assert parse_word_count(300) == 300
    assert parse_word_count("200-300 woorden") == 200
    assert parse_word_count("ongeveer een halve pagina") is None
    assert parse_word_count(None) is None
    assert parse_word_count(0) is None


def test_markdown_headers_map_to_sections():
    content = f"# Inleiding\n{INTRO}\n\n# Methode\n{METHOD}\n\n# Conclusie\n{ENDING}\n"
    assert parse_sections(content, SECTIONS) == {
        "inleiding": INTRO,
        "methode": METHOD,
        "conclusie": ENDING,
    }


def test_headers_match_approximately():
    content = f"## Inleidingen\n{INTRO}\n\n## Methodes\n{METHOD}\n\n## Conclusies\n{ENDING}"
    assert set(parse_by_headers(content, SECTIONS)) == {"inleiding", "methode", "conclusie"}


def test_underlined_headers():
    content = f"Inleiding\n=========\n{INTRO}\n\nMethode\n-------\n{METHOD}\n\nConclusie\n---------\n{ENDING}"
    result = parse_sections(content, SECTIONS)
    assert result["inleiding"].startswith("Klimaatverandering")
    assert result["conclusie"].endswith("strengere regels.")


def test_short_bodies_are_not_mapped():
    content = "# Inleiding\nTe kort.\n\n# Methode\nOok kort.\n\n# Conclusie\nKort."
    assert parse_by_headers(content, SECTIONS) == {}


def test_keyword_boundaries_pick_densest_sentences():
    content = ("Dit is een lange zin over het onderwerp klimaat en meer. "
               "Hier volgt een andere zin over iets anders helemaal. ")
    start, end = find_content_boundaries(content, ["klimaat"])
    span = content[start:end]
    assert "klimaat" in span
    assert "Hier volgt" not in span


def test_keyword_boundaries_without_keywords():
    assert find_content_boundaries("Wat tekst hier.", []) == (-1, -1)


PARAGRAPHS = [
    "Het regende de hele ochtend en de straten stonden blank in het hele dorp.",
    "De bakker opende later dan normaal omdat zijn kelder onder water stond.",
    "In de middag brak de zon door en droogden de pleinen langzaam op.",
    "Tegen de avond zaten de terrassen weer vol met tevreden mensen.",
]


def test_distribution_splits_paragraphs_evenly():
    content = "\n\n".join(PARAGRAPHS)
    sections = [{"id": "a", "title": "Alfa"}, {"id": "b", "title": "Bravo"}]
    result = parse_sections(content, sections)
    assert result == {
        "a": "\n\n".join(PARAGRAPHS[:2]),
        "b": "\n\n".join(PARAGRAPHS[2:]),
    }


def test_distribution_follows_word_count_weights():
    content = "\n\n".join(PARAGRAPHS)
    sections = [
        {"id": "a", "title": "Alfa", "wordCount": "300"},
        {"id": "b", "title": "Bravo", "wordCount": 100},
    ]
    result = distribute_content(content, sections)
    assert result["a"] == "\n\n".join(PARAGRAPHS[:3])
    assert result["b"] == PARAGRAPHS[3]


def test_empty_content_yields_nothing():
    assert parse_sections("", SECTIONS) == {}
    assert parse_sections("Tekst", []) == {}


CLIMATE = "Het klimaat verandert snel door de opwarming van de aarde"
CLIMATE_MORE = "De opwarming van het klimaat bedreigt kustgebieden overal"
ECONOMY = "De economie draait om kosten en baten voor iedereen hier"
ECONOMY_MORE = "Hoge kosten remmen de economie als er niet wordt ingegrepen"

TOPIC_SECTIONS = [
    {"id": "klimaat", "title": "Klimaat", "description": "opwarming"},
    {"id": "economie", "title": "Economie", "description": "kosten"},
]


def test_keywords_map_sections_without_headers():
    content = f"{CLIMATE}. {CLIMATE_MORE}. {ECONOMY}. {ECONOMY_MORE}."
    assert parse_by_headers(content, TOPIC_SECTIONS) == {}
    assert parse_sections(content, TOPIC_SECTIONS) == {
        "klimaat": f"{CLIMATE}.",
        "economie": f"{ECONOMY}.",
    }


def test_keyword_spans_must_be_longer_than_50_chars():
    content = "Het klimaat warmt op door uitstoot. De economie lijdt onder hoge kosten."
    assert parse_by_keywords(content, TOPIC_SECTIONS) == {}


def test_headers_take_precedence_over_keywords(monkeypatch):
    calls = []
    monkeypatch.setattr(section_parser, "parse_by_keywords", lambda *args: calls.append(args) or {})
    content = f"# Inleiding\n{INTRO}\n\n# Methode\n{METHOD}\n\n# Conclusie\n{ENDING}\n"
    assert set(parse_sections(content, SECTIONS)) == {"inleiding", "methode", "conclusie"}
    assert calls == []


def test_partial_keyword_match_falls_back_to_distribution():
    paragraphs = ["Het klimaat verandert snel en dat merken we aan de zomers.", PARAGRAPHS[1], PARAGRAPHS[2]]
    sections = [
        {"id": "klimaat", "title": "Klimaat"},
        {"id": "bravo", "title": "Bravo"},
        {"id": "charlie", "title": "Charlie"},
    ]
    content = "\n\n".join(paragraphs)
    assert list(parse_by_keywords(content, sections)) == ["klimaat"]
    assert parse_sections(content, sections) == dict(zip(["klimaat", "bravo", "charlie"], paragraphs))
