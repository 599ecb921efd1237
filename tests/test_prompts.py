from schrijfcoach import config
from schrijfcoach.prompts import (
    build_analysis_prompt,
    build_example_prompt,
    build_quiz_prompt,
    build_socratic_prompt,
    content_to_text,
    count_numbered_questions,
    learning_goal_context,
    level_label,
    sections_overview,
)

SECTIONS = [
    {"id": "inleiding", "title": "Inleiding", "description": "Introduceer het onderwerp"},
    {"id": "slot", "title": "Slot", "description": "Vat samen"},
]

GOALS_ENABLED = {
    "formativeAssessment": {
        "enabled": True,
        "strategies": {"personalLearningGoals": {"enabled": True, "scope": "per-section"}},
    }
}


def test_content_to_text_flattens_html():
    assert content_to_text("<h2>Titel</h2><p>Hallo <strong>wereld</strong></p>") == "=== Titel === Hallo **wereld**"


def test_content_to_text_lists():
    assert content_to_text("<ul><li>een</li><li>twee</li></ul>") == "• een • twee"


def test_content_to_text_markdown_table_drops_separator():
    text = content_to_text("| a | b |\n|---|---|\n| 1 | 2 |")
    assert "---" not in text
    assert "a" in text and "2" in text


def test_content_to_text_html_table():
    text = content_to_text("<table><tr><th>Naam</th></tr><tr><td>An</td></tr></table>")
    assert "--- TABEL ---" in text
    assert "[Naam]" in text
    assert "An |" in text


def test_content_to_text_empty():
    assert content_to_text("") == ""
    assert content_to_text(None) == ""


def test_analysis_prompt_includes_level_and_document():
    prompt = build_analysis_prompt(
        "Schrijf een betoog.",
        config.get_education_level("VWO"),
        teacher_name="Mevr. Jansen",
        instructions="Maximaal vier secties",
    )
    assert "Onderwijsniveau: VWO (12-18 jaar)" in prompt
    assert "- Docent: Mevr. Jansen" in prompt
    assert "Schrijf een betoog." in prompt
    assert "Aanvullende instructies van de docent: Maximaal vier secties" in prompt
    assert '"generalGuidance"' in prompt
    assert "VASTGESTELDE SECTIESTRUCTUUR" not in prompt


def test_analysis_prompt_with_custom_sections():
    prompt = build_analysis_prompt(
        "Tekst",
        config.get_education_level("HAVO"),
        custom_sections=[{"id": "intro", "title": "Inleiding"}],
    )
    assert "VASTGESTELDE SECTIESTRUCTUUR" in prompt
    assert "- intro: Inleiding" in prompt


def test_sections_overview_marks_current_section():
    overview = sections_overview([
        {"title": "Inleiding", "content": "<p>" + "a" * 250 + "</p>", "isCurrentSection": True},
        {"title": "Slot", "content": ""},
    ])
    assert ">>> HUIDIGE SECTIE <<<" in overview
    assert "a" * 200 + "..." in overview
    assert "Status: Nog leeg" in overview


def test_learning_goals_per_section_with_draft():
    state = {"learningGoals": {"sections": {"inleiding": {"content": "Ik wil leren argumenteren", "status": "draft"}}}}
    context = learning_goal_context(GOALS_ENABLED, state, None, SECTIONS, "inleiding")
    assert '- Inleiding: "Ik wil leren argumenteren" (CONCEPT) (HUIDIGE SECTIE)' in context
    assert "LEERDOEL BEGELEIDING" in context


def test_learning_goals_whole_assignment_scope():
    metadata = {
        "formativeAssessment": {
            "enabled": True,
            "strategies": {"personalLearningGoals": {"enabled": True, "scope": "whole-assignment"}},
        }
    }
    state = {"learningGoals": {"wholeAssignment": {"content": "Beter schrijven", "status": "final"}}}
    context = learning_goal_context(metadata, state, None, SECTIONS, "inleiding")
    assert 'Voor de hele opdracht: "Beter schrijven"' in context
    assert "(CONCEPT)" not in context


def test_learning_goals_legacy_fallback():
    context = learning_goal_context(GOALS_ENABLED, None, {"wholeAssignment": "Structuur verbeteren"}, SECTIONS, None)
    assert '- wholeAssignment: "Structuur verbeteren"' in context


def test_learning_goals_disabled():
    state = {"learningGoals": {"final": {"inleiding": "Iets leren"}}}
    assert learning_goal_context({}, state, None, SECTIONS, "inleiding") == ""


def test_socratic_prompt():
    prompt = build_socratic_prompt(
        message="Hoe begin ik?",
        current_section={"id": "inleiding", "title": "Inleiding", "guideQuestions": ["Wat is je standpunt?"]},
        current_content="<p>Klimaat is belangrijk.</p>",
        section_progress=[{"id": "inleiding", "title": "Inleiding", "content": "", "isCurrentSection": True}],
        assignment_context={"title": "Betoog", "objective": "Overtuig de lezer", "sections": SECTIONS},
        metadata={
            "educationLevel": "VWO",
            "educationLevelInfo": {"name": "VWO", "ageRange": "12-18 jaar", "complexity": "hoog niveau"},
            "teacherName": "Mevr. Jansen",
        },
        reflection={"reflection": "Het voorbeeld gebruikt veel bronnen", "exampleContent": "Voorbeeldtekst"},
        chat_history=[{"role": "user", "content": "Eerdere vraag"}],
        quiz_mode=True,
    )
    assert 'Vraag van de student: "Hoe begin ik?"' in prompt
    assert '"Klimaat is belangrijk."' in prompt
    assert "Hulpvragen voor deze sectie: Wat is je standpunt?" in prompt
    assert "NIVEAU-SPECIFIEKE AANPAK voor VWO" in prompt
    for line in config.get_level_approach("VWO"):
        assert f"- {line}" in prompt
    assert "REFLECTIE CONTEXT" in prompt
    assert "Student: Eerdere vraag" in prompt
    assert "DIAGNOSTISCHE QUIZ MODUS" in prompt
    assert "Docent: Mevr. Jansen" in prompt


def test_socratic_prompt_without_content():
    prompt = build_socratic_prompt(message="Help", current_section={"title": "Slot"})
    assert '"Nog niets geschreven"' in prompt
    assert "Geen sectie overzicht beschikbaar" in prompt
    assert "Geen hulpvragen" in prompt


def test_quiz_prompt_current_section_strips_html():
    prompt = build_quiz_prompt(
        "current-section",
        [{"id": "inleiding", "title": "Inleiding", "content": "<p>Mijn tekst</p>"}],
        assignment_context={"title": "Betoog"},
    )
    assert "Geschreven inhoud (10 karakters):\nMijn tekst" in prompt
    assert "ÉÉN OPEN, REFLECTIEVE VRAAG" in prompt


def test_quiz_prompt_all_sections():
    prompt = build_quiz_prompt(
        "all-sections",
        [dict(section, content="Tekst") for section in SECTIONS],
        metadata={"formativeAssessment": {"enabled": True, "strategies": {
            "diagnosticQuiz": {"enabled": True, "scope": "all-sections", "customPrompt": "Let op bronnen"}}}},
    )
    assert "STUDENT TEKST ANALYSE (2 secties)" in prompt
    assert 'Aangepaste instructies: "Let op bronnen"' in prompt


def test_example_prompt_all_sections_demands_exact_headers():
    prompt = build_example_prompt("all-sections", {"title": "Betoog"}, all_sections=SECTIONS,
                                  custom_context="Onderwerp: fietsen")
    assert "\n# Inleiding\n" in prompt
    assert "\n# Slot\n" in prompt
    assert "Onderwerp: fietsen" in prompt


def test_example_prompt_current_section():
    prompt = build_example_prompt("current-section", {"title": "Betoog"},
                                  current_section={"title": "Inleiding", "wordCount": "150"})
    assert "- Titel: Inleiding" in prompt
    assert "- Richtlijn woordaantal: 150" in prompt


def test_count_numbered_questions():
    assert count_numbered_questions("1. Eerste vraag? 2. Tweede vraag?") == 2
    assert count_numbered_questions("Geen nummers") == 0


def test_level_label():
    assert level_label({"name": "HAVO", "ageRange": "12-17 jaar"}) == "HAVO (12-17 jaar)"
    assert level_label({"name": "MBO"}) == "MBO"
    assert level_label({}) == "niet opgegeven"
