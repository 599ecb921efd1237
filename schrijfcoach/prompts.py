"""Dutch prompt templates for the Gemini calls.

Every builder is a pure function of the request data so the routes stay thin
and the prompts can be checked in tests without a model.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import re

from .config import get_level_approach

CURRENT_SECTION = "current-section"
ALL_SECTIONS = "all-sections"
WHOLE_ASSIGNMENT_KEY = "whole-assignment"


def dig(data: Any, *keys: str, default: Any = None) -> Any:
    """Nested dict lookup that tolerates missing keys and non-dict values."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def _lines(*parts: str) -> str:
    """Join prompt fragments, skipping empty ones."""
    return "\n".join(part for part in parts if part)


def _guide_questions(section: Dict[str, Any]) -> str:
    questions = section.get("guideQuestions") or []
    return ", ".join(questions) if questions else "Geen hulpvragen"


# ============================================================================
# Assignment analysis
# ============================================================================

ANALYSIS_JSON_FORMAT = """{
  "title": "Titel van de opdracht",
  "objective": "Wat moeten de studenten schrijven/maken",
  "sections": [
    {
      "id": "unieke-id",
      "title": "Sectie titel",
      "description": "Wat wordt er in deze sectie verwacht",
      "guideQuestions": ["Vraag 1 om de student te helpen", "Vraag 2", "etc"],
      "wordCount": "Geschat aantal woorden (optioneel)"
    }
  ],
  "generalGuidance": "Algemene richtlijnen voor de opdracht"
}"""


def build_analysis_prompt(
    document_text: str,
    level_info: Dict[str, str],
    teacher_name: str = "",
    assignment_title: str = "",
    instructions: str = "",
    custom_sections: Optional[List[Dict[str, Any]]] = None,
) -> str:
    context = _lines(
        f"- Onderwijsniveau: {level_info['name']} ({level_info['ageRange']})",
        f"- Complexiteitsniveau: {level_info['complexity']}",
        f"- Docent: {teacher_name}" if teacher_name else "",
        f"- Opdrachttitel: {assignment_title}" if assignment_title else "",
    )

    document_block = document_text.strip() or "(Geen document geüpload, gebruik de instructies van de docent.)"

    structure_block = ""
    if custom_sections:
        listed = "\n".join(
            f"- {section.get('id')}: {section.get('title')}"
            + (f" ({section.get('description')})" if section.get("description") else "")
            for section in custom_sections
        )
        structure_block = f"""
VASTGESTELDE SECTIESTRUCTUUR (door de docent goedgekeurd):
{listed}

Gebruik EXACT deze secties, in deze volgorde en met deze id's. Vul alleen beschrijvingen en hulpvragen aan.
"""

    return f"""
Analyseer het volgende opdracht document en identificeer de structuur voor een leeromgeving.

CONTEXT:
{context}

Document inhoud:
{document_block}

{f"Aanvullende instructies van de docent: {instructions}" if instructions else ""}
{structure_block}
Taak:
1. Identificeer wat de leerlingen/studenten moeten schrijven
2. Bepaal de standaard secties van de opdracht
3. Geef per sectie een beschrijving van wat er verwacht wordt
4. Pas de complexiteit en taal aan het onderwijsniveau aan

BELANGRIJK: Houd rekening met het onderwijsniveau ({level_info['name']}) bij:
- De formulering van sectie-beschrijvingen
- De complexiteit van de hulpvragen
- Het verwachte denkniveau van de studenten

Geef je antwoord ALLEEN in het volgende JSON formaat, zonder extra tekst ervoor of erna:
{ANALYSIS_JSON_FORMAT}

BELANGRIJK: Antwoord ALLEEN met de JSON, geen andere tekst.

Zorg ervoor dat:
- De secties logisch geordend zijn
- Elke sectie duidelijke verwachtingen heeft
- De guide questions socratisch van aard zijn (stellen vragen, geven geen antwoorden)
- De structuur aansluit bij het type opdracht
"""


# ============================================================================
# Student content to readable text
# ============================================================================

_GIM = re.IGNORECASE | re.MULTILINE

_CONTENT_RULES: List[Tuple[re.Pattern, Any]] = [
    # Markdown headers
    (re.compile(r"^### (.*$)", _GIM), r"\n\n=== \1 ===\n"),
    (re.compile(r"^## (.*$)", _GIM), r"\n\n=== \1 ===\n"),
    (re.compile(r"^# (.*$)", _GIM), r"\n\n=== \1 ===\n"),
    # HTML headers and paragraphs
    (re.compile(r"<h([1-6])[^>]*>(.*?)</h[1-6]>", re.IGNORECASE), r"\n\n=== \2 ===\n"),
    (re.compile(r"<p[^>]*>(.*?)</p>", re.IGNORECASE), r"\1\n\n"),
    # Lists
    (re.compile(r"^- (.*$)", _GIM), "\u2022 \\1\n"),
    (re.compile(r"<li[^>]*>(.*?)</li>", re.IGNORECASE), "\u2022 \\1\n"),
    (re.compile(r"<ul[^>]*>|</ul>|<ol[^>]*>|</ol>", re.IGNORECASE), "\n"),
    # Markdown tables; separator rows are dropped
    (re.compile(r"\|.*\|"), lambda m: "" if "---" in m.group(0) else m.group(0).replace("|", " | ") + "\n"),
    # HTML tables
    (re.compile(r"<table[^>]*>", re.IGNORECASE), "\n--- TABEL ---\n"),
    (re.compile(r"</table>", re.IGNORECASE), "\n--- EINDE TABEL ---\n"),
    (re.compile(r"<tr[^>]*>", re.IGNORECASE), "\n"),
    (re.compile(r"</tr>", re.IGNORECASE), ""),
    (re.compile(r"<th[^>]*>(.*?)</th>", re.IGNORECASE), r"[\1] "),
    (re.compile(r"<td[^>]*>(.*?)</td>", re.IGNORECASE), r"\1 | "),
    # Inline formatting
    (re.compile(r"<strong[^>]*>(.*?)</strong>", re.IGNORECASE), r"**\1**"),
    (re.compile(r"<b[^>]*>(.*?)</b>", re.IGNORECASE), r"**\1**"),
    (re.compile(r"<em[^>]*>(.*?)</em>", re.IGNORECASE), r"*\1*"),
    (re.compile(r"<i[^>]*>(.*?)</i>", re.IGNORECASE), r"*\1*"),
    (re.compile(r"<blockquote[^>]*>(.*?)</blockquote>", re.IGNORECASE), r"> \1"),
    # Whatever markup is left
    (re.compile(r"<[^>]*>"), ""),
    (re.compile(r"\n\s*\n"), "\n\n"),
    (re.compile(r"\s+"), " "),
]


def content_to_text(content: Optional[str]) -> str:
    """Flatten editor content (HTML and/or Markdown) into one line of readable text."""
    if not content:
        return ""
    text = content
    for pattern, replacement in _CONTENT_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


# ============================================================================
# Socratic chat
# ============================================================================

def goal_text(goal: Any) -> str:
    """Learning goals arrive either as plain strings or as {content, status, updatedAt} records."""
    if isinstance(goal, str):
        return goal.strip()
    if isinstance(goal, dict) and isinstance(goal.get("content"), str):
        return goal["content"].strip()
    return ""


def _is_draft(goal: Any) -> bool:
    return isinstance(goal, dict) and goal.get("status") == "draft"


def _section_title(sections: List[Dict[str, Any]], section_id: str) -> Optional[str]:
    for section in sections:
        if section.get("id") == section_id:
            return section.get("title")
    return None


def learning_goal_entries(formative_state: Optional[Dict[str, Any]]) -> List[Tuple[str, str, bool]]:
    """(section id, goal text, is draft) for every learning goal in the workspace state."""
    goals = dig(formative_state, "learningGoals", default={}) or {}
    entries: List[Tuple[str, str, bool]] = []
    seen = set()

    final = goals.get("final") or {}
    for section_id, goal in final.items():
        text = goal_text(goal)
        if text:
            entries.append((section_id, text, False))
            seen.add(section_id)

    for section_id, goal in (goals.get("drafts") or {}).items():
        text = goal_text(goal)
        if text and section_id not in seen:
            entries.append((section_id, text, True))
            seen.add(section_id)

    for section_id, goal in (goals.get("sections") or {}).items():
        text = goal_text(goal)
        if text and section_id not in seen:
            entries.append((section_id, text, _is_draft(goal)))
            seen.add(section_id)

    whole = goals.get("wholeAssignment")
    if goal_text(whole) and WHOLE_ASSIGNMENT_KEY not in seen:
        entries.append((WHOLE_ASSIGNMENT_KEY, goal_text(whole), _is_draft(whole)))

    return entries


def learning_goal_context(
    metadata: Optional[Dict[str, Any]],
    formative_state: Optional[Dict[str, Any]],
    learning_goals: Optional[Dict[str, Any]],
    sections: List[Dict[str, Any]],
    current_section_id: Optional[str],
) -> str:
    strategy = dig(metadata, "formativeAssessment", "strategies", "personalLearningGoals", default={})
    if not dig(strategy, "enabled"):
        return ""

    header = "PERSOONLIJKE LEERDOELEN VAN STUDENT:"
    lines: List[str] = []
    scope = strategy.get("scope")
    entries = learning_goal_entries(formative_state)

    if scope == WHOLE_ASSIGNMENT_KEY:
        for section_id, text, draft in entries:
            if section_id == WHOLE_ASSIGNMENT_KEY:
                lines.append(f'Voor de hele opdracht: "{text}"' + (" (CONCEPT)" if draft else ""))
    else:
        for section_id, text, draft in entries:
            title = _section_title(sections, section_id)
            if not title:
                continue
            suffix = " (CONCEPT)" if draft else ""
            if section_id == current_section_id:
                suffix += " (HUIDIGE SECTIE)"
            lines.append(f'- {title}: "{text}"{suffix}')

    # Goals sent directly by the client (older workspaces)
    for key, goal in (learning_goals or {}).items():
        text = goal_text(goal)
        if text and not any(text in line for line in lines):
            lines.append(f'- {key}: "{text}"')

    if not lines:
        return ""

    return f"""
{header}
{chr(10).join(lines)}

LEERDOEL BEGELEIDING:
- Verwijs regelmatig naar relevante leerdoelen bij je begeleiding
- Help de student reflecteren op hoe hun werk bijdraagt aan hun leerdoelen
- Stel vragen die helpen de leerdoelen te bereiken
- Geef constructieve feedback op de kwaliteit van leerdoelen wanneer relevant
- Moedig diepere reflectie aan over wat ze werkelijk willen leren
- Leg verbanden tussen verschillende leerdoelen en secties
"""


def reflection_context(reflection: Optional[Dict[str, Any]]) -> str:
    if not reflection:
        return ""
    return f"""
REFLECTIE CONTEXT:
De student heeft zojuist een reflectie geschreven op een voorbeeld voor deze sectie.

Student reflectie: "{reflection.get('reflection', '')}"

Voorbeeld waar student op reflecteerde: "{reflection.get('exampleContent', '')}"

BELANGRIJK VOOR REFLECTIE BEGELEIDING:
- Dit is een vervolgconversatie op de student reflectie
- Daag de student uit om dieper na te denken
- Stel socratische vragen die de reflectie verdiepen
- Help de student verbanden te zien die ze misschien missen
- Leid ze naar nieuwe inzichten over het voorbeeld en hun eigen leerproces
- Moedig ze aan om concrete toepassingen te bedenken
- Vraag door op oppervlakkige antwoorden
"""


def formative_assessment_context(metadata: Optional[Dict[str, Any]]) -> str:
    formative = dig(metadata, "formativeAssessment", default={})
    if not dig(formative, "enabled"):
        return ""

    context = (
        "\nFORMATIEF HANDELEN CONTEXT:\n"
        "De docent heeft formatieve strategieën ingeschakeld voor bewuster leren:\n"
    )
    if dig(formative, "strategies", "personalLearningGoals", "enabled"):
        context += "- \U0001F3AF Persoonlijke leerdoelen zijn actief\n"
    if dig(formative, "strategies", "exampleBasedLearning", "enabled"):
        source = dig(formative, "strategies", "exampleBasedLearning", "exampleSource")
        label = "AI-voorbeelden" if source == "ai-generated" else "Docent voorbeelden"
        context += f"- \U0001F4DD Voorbeeldgericht leren is actief ({label})\n"
    return context + "\n"


def all_formative_context(
    formative_state: Optional[Dict[str, Any]],
    sections: List[Dict[str, Any]],
    current_section_id: Optional[str],
) -> str:
    if not formative_state:
        return ""

    context = ""
    reflections = dig(formative_state, "examples", "reflections", default={}) or {}
    reflection_lines = []
    for section_id, reflection in reflections.items():
        title = _section_title(sections, section_id)
        if title and reflection:
            current = " (HUIDIGE SECTIE)" if section_id == current_section_id else ""
            reflection_lines.append(f'- {title}: "{goal_text(reflection) or reflection}"{current}')
    if reflection_lines:
        context += "\nREFLECTIES VAN STUDENT OP VOORBEELDEN:\n" + "\n".join(reflection_lines) + "\n\n"

    available = dig(formative_state, "examples", "availableExamples", default=[]) or []
    if not available:
        available = list((dig(formative_state, "examples", "data", default={}) or {}).keys())
    example_lines = []
    for section_id in available:
        title = _section_title(sections, section_id)
        if title:
            current = " (HUIDIGE SECTIE)" if section_id == current_section_id else ""
            example_lines.append(f"- {title}{current}")
    if example_lines:
        context += "BESCHIKBARE VOORBEELDEN:\n" + "\n".join(example_lines) + "\n\n"

    return context


def sections_overview(section_progress: Optional[List[Dict[str, Any]]]) -> str:
    if not section_progress:
        return "Geen sectie overzicht beschikbaar"

    blocks = []
    for section in section_progress:
        readable = content_to_text(section.get("content") or "")
        has_content = section.get("hasContent")
        if has_content is None:
            has_content = bool(readable)
        if readable:
            summary = readable[:200] + ("..." if len(readable) > 200 else "")
            content_line = f"Inhoud samenvatting: {summary}"
        else:
            content_line = "Geen inhoud"
        blocks.append(
            f"""{'>>> HUIDIGE SECTIE <<<' if section.get('isCurrentSection') else ''}
Sectie: "{section.get('title', '')}"
Beschrijving: {section.get('description') or ''}
Status: {'Heeft inhoud geschreven' if has_content else 'Nog leeg'}
{content_line}"""
        )
    return "\n\n".join(blocks)


def chat_history_context(chat_history: Optional[List[Dict[str, Any]]], limit: int = 10) -> str:
    if not chat_history:
        return ""
    lines = []
    for message in chat_history[-limit:]:
        speaker = "Student" if message.get("role") == "user" else "Tutor"
        lines.append(f"{speaker}: {message.get('content', '')}")
    return "EERDER IN DIT GESPREK:\n" + "\n".join(lines) + "\n"


LEARNING_GOAL_EXAMPLES = """
Voorbeelden van leerdoel-gerichte vragen:
- "Hoe draagt wat je nu schrijft bij aan je persoonlijke leerdoel?"
- "Welke aspecten van je leerdoel zie je terug in je huidige werk?"
- "Op welke manier helpt deze sectie je om te bereiken wat je wilt leren?"
- "Wat zou je willen toevoegen om je leerdoel beter te realiseren?"
- "Hoe zou je je leerdoel kunnen verdiepen of specifieker maken?"
- "Welke nieuwe inzichten krijg je die aansluiten bij je leerdoelen?"
"""


def reflection_examples(reflection: Optional[Dict[str, Any]]) -> str:
    if not reflection:
        return ""
    opening = (reflection.get("reflection") or "")[:50]
    return f"""
Voorbeelden van reflectie-verdiepende vragen:
- "Je schrijft in je reflectie '{opening}...'. Wat bedoel je daar precies mee?"
- "Welke specifieke elementen in het voorbeeld zorgen ervoor dat het zo effectief is?"
- "Hoe zou je dat wat je goed vindt aan het voorbeeld concreet kunnen toepassen in je eigen tekst?"
- "Wat zou er gebeuren als je dat aspect weglaat uit je eigen schrijven?"
- "Kun je een specifiek voorbeeld geven van hoe je dit gaat gebruiken?"
- "Wat is het verschil tussen hoe jij normaal zou schrijven en wat je in dit voorbeeld ziet?"
- "Welke nieuwe inzichten geeft dit voorbeeld je over effectief schrijven?"
- "Wat zou je aan iemand anders uitleggen over waarom dit voorbeeld goed werkt?"
"""


def level_approach_block(metadata: Optional[Dict[str, Any]]) -> str:
    level_info = dig(metadata, "educationLevelInfo")
    if not level_info:
        return ""
    approach = get_level_approach(dig(metadata, "educationLevel"))
    bullets = "\n".join(f"- {line}" for line in approach)
    return f"""
NIVEAU-SPECIFIEKE AANPAK voor {level_info.get('name', '')}:
{bullets}
"""


def build_socratic_prompt(
    message: str,
    current_section: Dict[str, Any],
    current_content: str = "",
    section_progress: Optional[List[Dict[str, Any]]] = None,
    assignment_context: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    learning_goals: Optional[Dict[str, Any]] = None,
    reflection: Optional[Dict[str, Any]] = None,
    formative_state: Optional[Dict[str, Any]] = None,
    chat_history: Optional[List[Dict[str, Any]]] = None,
    quiz_mode: bool = False,
) -> str:
    assignment_context = assignment_context or {}
    sections = assignment_context.get("sections") or section_progress or []
    current_id = current_section.get("id")
    readable_content = content_to_text(current_content)
    level_info = dig(metadata, "educationLevelInfo")

    education = _lines(
        f"- Onderwijsniveau: {level_info.get('name')} ({level_info.get('ageRange')})" if level_info else "",
        f"- Complexiteitsniveau: {level_info.get('complexity')}" if level_info else "",
        f"- Docent: {metadata.get('teacherName')}" if dig(metadata, "teacherName") else "",
    )

    has_goals = bool(learning_goal_entries(formative_state)) or any(
        goal_text(goal) for goal in (learning_goals or {}).values()
    )

    quiz_block = ""
    if quiz_mode:
        quiz_block = """
DIAGNOSTISCHE QUIZ MODUS:
- De student beantwoordt een diagnostische vraag over hun eigen tekst
- Reageer op hun antwoord met één verdiepende vervolgvraag
- Benoem kort wat sterk is aan hun reflectie voordat je doorvraagt
"""

    return f"""
Je bent een socratische tutor die studenten begeleidt bij het schrijven van hun opdracht.

BELANGRIJK: Je mag NOOIT het werk voor de student doen. Je stelt alleen doordachte vragen die hen helpen zelf na te denken.

ONDERWIJSCONTEXT:
{education}

{formative_assessment_context(metadata)}

{learning_goal_context(metadata, formative_state, learning_goals, sections, current_id)}

{reflection_context(reflection)}

{all_formative_context(formative_state, sections, current_id)}

OPDRACHT CONTEXT:
- Titel: {assignment_context.get('title', '')}
- Doel: {assignment_context.get('objective') or assignment_context.get('description') or ''}
- Algemene richtlijnen: {assignment_context.get('generalGuidance') or ''}

HUIDIGE SECTIE (waar student aan werkt):
- Titel: {current_section.get('title', '')}
- Beschrijving: {current_section.get('description') or ''}
- Hulpvragen voor deze sectie: {_guide_questions(current_section)}

Wat de student in deze sectie heeft geschreven:
"{readable_content or 'Nog niets geschreven'}"

OVERZICHT VAN ALLE SECTIES (voor holistische begeleiding):
{sections_overview(section_progress)}

CROSS-SECTIE BEWUSTZIJN:
- Je hebt inzicht in wat de student in andere secties heeft geschreven
- Gebruik deze informatie om verbanden te leggen tussen secties
- Help de student consistentie te bewaren tussen verschillende delen
- Wijs op mogelijke tegenstrijdigheden of gemiste verbindingen
- Moedig de student aan om eerder geschreven content te gebruiken waar relevant
- Stel vragen die helpen de rode draad door de hele opdracht te behouden

OPMERKING: De student gebruikt een rich text editor met opmaak en mogelijk tabellen. Begrijp de structuur en inhoud van hun werk.
{quiz_block}
{chat_history_context(chat_history)}
Vraag van de student: "{message}"

Reageer als een socratische tutor, aangepast aan het onderwijsniveau:
1. Stel doordachte vragen die de student helpen zelf na te denken
2. Moedig kritisch denken aan op het juiste niveau
3. Help hen structuur aan te brengen in hun gedachten
4. Verwijs naar de hulpvragen van de sectie indien relevant
5. Gebruik je kennis van andere secties om verbanden te leggen
6. Help de student consistentie te bewaren tussen secties
7. Geef NOOIT direct antwoorden of schrijf NOOIT tekst voor hen
8. Als ze om voorbeelden vragen, stel dan vragen die hen helpen zelf voorbeelden te bedenken
9. Wees bemoedigend maar blijf uitdagend
10. Houd je reactie beknopt (max 3-4 zinnen)
11. Verwijs subtiel naar eerder geschreven content als dat relevant is
12. Als er een persoonlijk leerdoel is ingesteld, verwijs hier regelmatig naar
13. Help de student reflecteren op hun leerdoel en geef feedback op de kwaliteit ervan
14. Stel vragen die aansluiten bij hun persoonlijke leerambities
{level_approach_block(metadata)}
Voorbeelden van goede socratische vragen:
- "Wat denk je dat de belangrijkste punten zijn die je wilt maken?"
- "Hoe zou je dit uitleggen aan iemand die er niets van weet?"
- "Welke bewijzen of voorbeelden zou je kunnen gebruiken om dit punt te ondersteunen?"
- "Wat zijn mogelijke tegenargumenten en hoe zou je daarop reageren?"

Voorbeelden van cross-sectie bewustzijn vragen:
- "Hoe sluit wat je hier schrijft aan bij wat je eerder in [andere sectie] hebt beschreven?"
- "Is er een verband tussen dit punt en wat je in de inleiding hebt gesteld?"
- "Hoe zou je dit argument kunnen versterken met informatie uit je eerdere secties?"
- "Welke rode draad zie je door je hele opdracht heen lopen?"
- "Past dit wel bij de toon en stijl die je in andere secties gebruikt?"
{LEARNING_GOAL_EXAMPLES if has_goals else ''}
{reflection_examples(reflection)}
"""


# ============================================================================
# Diagnostic quiz
# ============================================================================

def quiz_formative_context(metadata: Optional[Dict[str, Any]]) -> str:
    formative = dig(metadata, "formativeAssessment", default={})
    if not dig(formative, "enabled"):
        return ""

    context = "\nFORMATIEVE ASSESSMENT CONTEXT:\n"
    quiz = dig(formative, "strategies", "diagnosticQuiz", default={})
    if dig(quiz, "enabled"):
        context += "- Diagnostische quiz is actief\n"
        context += f"- Scope: {quiz.get('scope', '')}\n"
        if quiz.get("customPrompt"):
            context += f"- Aangepaste instructies: \"{quiz['customPrompt']}\"\n"
    return context + "\n"


def quiz_learning_goals_context(
    formative_state: Optional[Dict[str, Any]],
    sections: List[Dict[str, Any]],
) -> str:
    entries = learning_goal_entries(formative_state)
    if not dig(formative_state, "learningGoals"):
        return ""

    context = "\nSTUDENT LEERDOELEN:\n"
    for section_id, text, draft in entries:
        if draft:
            continue
        title = _section_title(sections, section_id) or section_id
        context += f'- {title}: "{text}"\n'
    return context + "\n"


def format_section_for_quiz(section: Dict[str, Any]) -> str:
    clean_content = re.sub(r"<[^>]*>", "", section.get("content") or "").strip()
    return f"""
SECTIE: {section.get('title', '')}
Beschrijving: {section.get('description') or ''}
Hulpvragen: {_guide_questions(section)}
Geschreven inhoud ({len(clean_content)} karakters):
{clean_content}
"""


def level_label(level_info: Dict[str, Any]) -> str:
    if not level_info.get("name"):
        return "niet opgegeven"
    if level_info.get("ageRange"):
        return f"{level_info['name']} ({level_info['ageRange']})"
    return level_info["name"]


def build_quiz_prompt(
    scope: str,
    target_sections: List[Dict[str, Any]],
    assignment_context: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    formative_state: Optional[Dict[str, Any]] = None,
) -> str:
    assignment_context = assignment_context or {}
    sections = assignment_context.get("sections") or target_sections
    level_info = dig(metadata, "educationLevelInfo", default={}) or {}
    content_analysis = "\n---\n".join(format_section_for_quiz(section) for section in target_sections)

    header = f"""
{quiz_formative_context(metadata)}

{quiz_learning_goals_context(formative_state, sections)}

OPDRACHT CONTEXT:
- Titel: {assignment_context.get('title', '')}
- Doel: {assignment_context.get('objective') or ''}
- Onderwijsniveau: {level_label(level_info)}
"""

    closing_format = 'Eindig met: "Neem de tijd om hier rustig over na te denken en deel je gedachten."'

    if scope == CURRENT_SECTION:
        return f"""
Je bent een expert in formatief handelen en diagnostische evaluatie. Genereer een reeks kritische, diagnostische vragen voor een student die zijn/haar geschreven tekst wil evalueren.
{header}
STUDENT TEKST ANALYSE:
{content_analysis}

BELANGRIJKE INSTRUCTIES voor de quiz:
1. Begin met ÉÉN OPEN, REFLECTIEVE VRAAG die de student uitnodigt om over hun eigen werk na te denken
2. Deze eerste vraag moet breed genoeg zijn om een gesprek te starten, maar specifiek genoeg om waardevol te zijn
3. Focus op FEEDBACK (Waar sta je nu?), FEEDUP (Waar ga je naartoe?) en FEEDFORWARD (Wat zijn de volgende stappen?)
4. Stel geen vragen waarop je zelf antwoorden geeft - laat de student nadenken en antwoorden
5. Houd rekening met het onderwijsniveau ({level_info.get('complexity')})
6. Als er leerdoelen zijn, verwijs dan subtiel naar deze waar relevant

VOORBEELDEN van goede openingsvragen:
- "Als je terugkijkt naar je tekst, wat vind je zelf het sterkste punt en waar twijfel je nog het meest over?"
- "Stel je voor dat een kritische lezer je tekst leest - welk deel zou de meeste vragen oproepen en waarom?"
- "Hoe zou je in eigen woorden uitleggen wat je belangrijkste boodschap is in deze sectie?"

FORMAAT:
Begin met een vriendelijke, uitnodigende inleiding (1-2 zinnen) die de student op hun gemak stelt.
Stel dan ÉÉN open vraag die uitnodigt tot reflectie.
{closing_format}

Genereer nu de openingsvraag voor de diagnostische quiz:
"""

    return f"""
Je bent een expert in formatief handelen en diagnostische evaluatie. Genereer een reeks kritische, diagnostische vragen voor een student die zijn/haar complete geschreven werk wil evalueren.
{header}
STUDENT TEKST ANALYSE ({len(target_sections)} secties):
{content_analysis}

BELANGRIJKE INSTRUCTIES voor de quiz:
1. Begin met ÉÉN OPEN, REFLECTIEVE VRAAG die de student uitnodigt om over hun complete werk na te denken
2. Deze eerste vraag moet breed genoeg zijn om een gesprek te starten over het geheel, maar specifiek genoeg om waardevol te zijn
3. Focus op FEEDBACK (Waar sta je nu?), FEEDUP (Waar ga je naartoe?) en FEEDFORWARD (Wat zijn de volgende stappen?)
4. Stel geen vragen waarop je zelf antwoorden geeft - laat de student nadenken en antwoorden
5. Houd rekening met het onderwijsniveau ({level_info.get('complexity')})
6. Als er leerdoelen zijn, verwijs dan subtiel naar deze waar relevant
7. Focus op de samenhang en rode draad door het hele werk

VOORBEELDEN van goede openingsvragen voor complete werken:
- "Nu je je hele werk hebt geschreven, hoe zou je de rode draad omschrijven die door alle secties loopt?"
- "Als je terugkijkt op je complete tekst, welk deel ben je het meest trots op en welk deel zou je nog willen versterken?"
- "Stel dat je je werk in een lift pitch van 30 seconden moet samenvatten - wat zou je dan vertellen?"

FORMAAT:
Begin met een vriendelijke, uitnodigende inleiding (1-2 zinnen) die de student op hun gemak stelt.
Stel dan ÉÉN open vraag die uitnodigt tot reflectie over het complete werk.
{closing_format}

Genereer nu de openingsvraag voor de diagnostische quiz:
"""


def count_numbered_questions(text: str) -> int:
    return len(re.findall(r"\d+\.", text))


# ============================================================================
# Example generation
# ============================================================================

def example_formative_context(formative_assessment: Optional[Dict[str, Any]]) -> str:
    if not dig(formative_assessment, "enabled"):
        return ""

    context = "\nFORMATIEVE ASSESSMENT CONTEXT:\n"
    strategy = dig(formative_assessment, "strategies", "exampleBasedLearning", default={})
    if dig(strategy, "enabled"):
        source = (
            "AI-gegenereerde voorbeelden"
            if strategy.get("exampleSource") == "ai-generated"
            else "Door docent aangeleverde voorbeelden"
        )
        context += "- Voorbeeldgericht leren is actief\n"
        context += f"- Bron: {source}\n"
        if strategy.get("customReflectionQuestions"):
            context += f"- Reflectievragen: \"{strategy['customReflectionQuestions']}\"\n"
    return context + "\n"


def custom_context_block(custom_context: Optional[str]) -> str:
    if not custom_context or not custom_context.strip():
        return ""
    return f"""
EXTRA CONTEXT VAN DOCENT/STUDENT:
{custom_context}

BELANGRIJK: Houd rekening met deze extra context bij het genereren van het voorbeeld. Pas het voorbeeld aan zodat het aansluit bij de gegeven context.

"""


def build_example_prompt(
    scope: str,
    assignment_context: Dict[str, Any],
    current_section: Optional[Dict[str, Any]] = None,
    all_sections: Optional[List[Dict[str, Any]]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    formative_assessment: Optional[Dict[str, Any]] = None,
    custom_context: Optional[str] = None,
) -> str:
    level_info = dig(metadata, "educationLevelInfo", default={}) or {}
    intro = f"""
{example_formative_context(formative_assessment)}

{custom_context_block(custom_context)}

OPDRACHT CONTEXT:
- Titel: {assignment_context.get('title', '')}
- Doel: {assignment_context.get('objective') or ''}
- Onderwijsniveau: {level_label(level_info)}
"""

    if scope == CURRENT_SECTION:
        section = current_section or {}
        return f"""
Je bent een expert in het schrijven van educatieve voorbeelden. Genereer een CONCREET, UITGEWERKT voorbeeld voor de volgende sectie van een student opdracht.
{intro}
SECTIE INFORMATIE:
- Titel: {section.get('title', '')}
- Beschrijving: {section.get('description') or ''}
- Richtlijn woordaantal: {section.get('wordCount') or 'Niet gespecificeerd'}
- Hulpvragen: {_guide_questions(section)}

BELANGRIJKE INSTRUCTIES:
1. Genereer een VOLLEDIG UITGEWERKT voorbeeld van hoe deze sectie eruit zou kunnen zien
2. Maak het voorbeeld realistisch en passend bij het onderwijsniveau
3. Gebruik concrete inhoud, geen placeholder tekst
4. Het voorbeeld moet educatief waardevol zijn
5. Houd rekening met het richtlijn woordaantal
6. Laat het voorbeeld zien hoe de hulpvragen kunnen worden beantwoord
7. Gebruik duidelijke, toegankelijke taal voor het onderwijsniveau
8. Maak het voorbeeld inspirerend maar haalbaar

FORMAAT:
Geef alleen de voorbeeldtekst terug, geen uitleg of meta-commentaar. De tekst moet direct bruikbaar zijn als voorbeeld in de sectie.

Genereer nu een concreet, uitgewerkt voorbeeld:
"""

    sections = all_sections or []
    structure = "".join(
        f"""
{index}. {section.get('title', '')}
   - Beschrijving: {section.get('description') or ''}
   - Woordaantal: {section.get('wordCount') or 'Niet gespecificeerd'}
   - Hulpvragen: {_guide_questions(section)}
"""
        for index, section in enumerate(sections, start=1)
    )
    headers = "".join(
        f"""
# {section.get('title', '')}
[Voorbeeldinhoud voor {section.get('title', '')}]
"""
        for section in sections
    )

    return f"""
Je bent een expert in het schrijven van educatieve voorbeelden. Genereer een CONCREET, UITGEWERKT voorbeeld van een compleet verslag/opdracht.
{intro}
SECTIE STRUCTUUR:
{structure}

BELANGRIJKE INSTRUCTIES:
1. Genereer een VOLLEDIG UITGEWERKT voorbeeld van het complete verslag
2. Behandel ALLE secties in logische volgorde
3. Maak het voorbeeld realistisch en passend bij het onderwijsniveau
4. Gebruik concrete inhoud, geen placeholder tekst
5. Zorg voor samenhang tussen de secties
6. Het voorbeeld moet educatief waardevol zijn
7. Houd rekening met de richtlijn woordaantallen per sectie
8. Laat zien hoe alle hulpvragen kunnen worden beantwoord
9. Gebruik duidelijke, toegankelijke taal voor het onderwijsniveau
10. Maak het voorbeeld inspirerend maar haalbaar

FORMAAT:
Structureer het voorbeeld met duidelijke sectie-headers EXACT zoals hieronder:
{headers}

BELANGRIJK:
- Gebruik EXACT de sectietitels zoals hierboven aangegeven
- Begin elke sectie met # gevolgd door de exacte titel
- Geef alleen de voorbeeldtekst terug, geen uitleg of meta-commentaar
- Zorg dat elke sectie substantiële inhoud heeft (minimaal 2-3 alinea's)

Genereer nu een concreet, uitgewerkt voorbeeld van het complete verslag:
"""
