"""Static questionnaire catalog and answer validation.

Sections are numbered 1..N in display order. Repeatable blocks
(children, spouses, assets, additional stories) are answered under
synthesized question ids; :func:`find_question` resolves those to a
question definition as well.
"""

from collections.abc import Callable

from legacy_letters.core.exceptions import InvalidAnswerError, QuestionNotFoundError, SectionOutOfRangeError
from legacy_letters.core.models import AnswerValue, Question, QuestionType, Section
from legacy_letters.services.questionnaire.entities import (
    ASSET,
    CHILD,
    SPOUSE,
    parse_entity_key,
    parse_story_key,
)

DEFAULT_MAX_SELECTIONS = 5
CUSTOM_TEXT_MAX_LENGTH = 140
SIGNATURE_QUESTION_ID = "q7_5"

OWN_WORDS = "Say it in your own words."
VOICE_HINT = "Say it in your own words. Voice-to-Text highly recommended."

# Long-text types that accept dictated input
DICTATION_TYPES = frozenset({QuestionType.textarea, QuestionType.story, QuestionType.voice})

_Q = Question
_T = QuestionType

SECTIONS: tuple[Section, ...] = (
    Section(
        id=1,
        title="First Things First",
        questions=[
            _Q(
                id="q1_1",
                type=_T.dropdown,
                text="Who is this letter to?",
                required=True,
                options=[
                    "My Loved Ones",
                    "My Family and Future Generations",
                    "My Beautiful Wife",
                    "My Loving Husband",
                    "My Children and their Children",
                ],
            ),
            _Q(
                id="q1_2",
                type=_T.dropdown,
                text="I am creating this Legacy Letter in order to:",
                required=True,
                options=[
                    "pass along my values and beliefs.",
                    "ensure my family knows my wishes.",
                    "share my life lessons and experiences.",
                    "leave a meaningful legacy.",
                    "express my love and my hopes for the future.",
                    "ensure that my intentions and priorities are understood and honored.",
                    "finally say the things I wasn't able to say to you directly.",
                ],
            ),
            _Q(
                id="q1_3",
                type=_T.dropdown,
                text="Please share this Legacy Letter with anyone mentioned in it and:",
                required=True,
                options=[
                    "with my immediate family only.",
                    "with my extended family.",
                    "with my closest friends.",
                    "with any of my family and friends.",
                    "with future generations of my family.",
                ],
            ),
        ],
    ),
    Section(
        id=2,
        title="My Beliefs and Values",
        questions=[
            _Q(
                id="q2_1",
                type=_T.dropdown,
                text="I fundamentally believe:",
                required=True,
                options=[
                    "that kindness always matters.",
                    "that honesty is the best policy.",
                    "that family is everything.",
                    "that people are inherently good.",
                    "that I am a lifelong student.",
                    "that everything happens for a reason.",
                    "love conquers all.",
                ],
            ),
            _Q(
                id="q2_2",
                type=_T.multiselect,
                text="The people who know me best would describe me as:",
                options=["Reliable", "Honest", "Loving", "Caring", "Funny", "Stubborn", "Patient"],
            ),
            _Q(
                id="q2_3",
                type=_T.multi_dropdown,
                text="I hope the people I love see these qualities in themselves:",
                options=["Hardworking", "Trustworthy", "Kind-hearted", "Generous", "Curious", "Brave"],
            ),
            _Q(
                id="q2_3b",
                type=_T.dropdown,
                text="Above all, I want you to remember:",
                options=[
                    "that family is everything.",
                    "that kindness always matters.",
                    "that you are never alone.",
                ],
            ),
            _Q(
                id="q2_4",
                type=_T.story,
                text="Share a story that shaped what you believe.",
                placeholder=VOICE_HINT,
            ),
            _Q(
                id="q2_4b",
                type=_T.voice,
                text="What lesson did that story teach you?",
                placeholder=VOICE_HINT,
            ),
        ],
    ),
    Section(
        id=3,
        title="My Family",
        questions=[
            _Q(
                id="q3_1",
                type=_T.dropdown,
                text="Family has mattered to me because:",
                options=[
                    "it provided a foundation for identity and belonging.",
                    "it taught me how to love.",
                    "it gave me purpose.",
                ],
            ),
            _Q(
                id="q3_2a",
                type=_T.dropdown,
                text="A family member who shaped me:",
                options=["Mother", "Father", "Grandmother", "Grandfather", "Sibling", "Aunt", "Uncle"],
            ),
            _Q(id="q3_2b", type=_T.text, text="Their name:", placeholder="Type Here"),
            _Q(
                id="q3_2c",
                type=_T.dropdown,
                text="They were always:",
                options=["loving", "patient", "wise", "hardworking", "funny"],
            ),
            _Q(id="q3_2d", type=_T.voice, text="Tell us about them.", placeholder=VOICE_HINT),
            _Q(
                id="q3_3a",
                type=_T.dropdown,
                text="Another family member has been:",
                options=["caring", "supportive", "inspiring", "protective"],
            ),
            _Q(id="q3_3b", type=_T.textarea, text="What would you like them to know?", placeholder=VOICE_HINT),
            _Q(
                id=CHILD.prefix,
                type=_T.child_section,
                text="My children",
                help_text="Add a block for each child.",
            ),
            _Q(
                id=SPOUSE.prefix,
                type=_T.spouse_section,
                text="My spouse or partner",
                options=["My Wife", "My Husband", "My Partner", "My Late Wife", "My Late Husband"],
            ),
        ],
    ),
    Section(
        id=4,
        title="Pivotal Experiences",
        questions=[
            _Q(
                id="q4_1",
                type=_T.dropdown,
                text="The most pivotal moments of my life were:",
                options=[
                    "the births of my children.",
                    "the day I got married.",
                    "starting my own business.",
                    "overcoming a serious illness.",
                ],
            ),
            _Q(
                id="q4_2",
                type=_T.dropdown,
                text="What I am most proud of is:",
                options=["the family I raised.", "the career I built.", "the friends I kept."],
            ),
            _Q(
                id="q4_3",
                type=_T.story,
                text="Tell the story of a day that changed your life.",
                placeholder=VOICE_HINT,
            ),
        ],
    ),
    Section(
        id=5,
        title="Guidance for Stewardship",
        questions=[
            _Q(
                id="q5_1",
                type=_T.multiselect,
                text="I hope you will use what I leave behind by:",
                options=[
                    "investing wisely for long-term growth.",
                    "saving at least 60% of it for future security.",
                    "paying off any debt.",
                    "funding education.",
                    "giving to causes you care about.",
                    "buying a home.",
                ],
            ),
            _Q(
                id="q5_2",
                type=_T.multiselect,
                text="My beliefs about money:",
                options=[
                    "I value education over material wealth.",
                    "Wealth is a tool, not an identity.",
                    "Generosity brings more joy than spending.",
                ],
            ),
            _Q(
                id="q5_3",
                type=_T.multiselect,
                text="Before you make big decisions, please:",
                options=[
                    "spend the time to learn how to invest wisely.",
                    "understand budgeting and saving.",
                    "talk to a trusted advisor.",
                ],
            ),
            _Q(
                id="q5_5",
                type=_T.multi_dropdown,
                text="Habits that served me well:",
                options=[
                    "Spend less than you earn and save consistently.",
                    "Live on a written budget.",
                    "Avoid debt for things that lose value.",
                ],
            ),
            _Q(
                id="q5_6",
                type=_T.multi_dropdown,
                text="My hopes for your inheritance:",
                options=[
                    "Use this inheritance to build a strong foundation.",
                    "Invest thoughtfully with long-term perspective.",
                    "Share it with those who need it.",
                ],
            ),
            _Q(
                id=ASSET.prefix,
                type=_T.asset_section,
                text="Specific assets and my guidance for them",
                options=["the house", "the family business", "the cabin", "my jewelry", "my investments"],
            ),
            _Q(id="q5_8", type=_T.voice, text="Anything else about what you leave behind?", placeholder=VOICE_HINT),
        ],
    ),
    Section(
        id=6,
        title="My Legacy",
        questions=[
            _Q(
                id="q6_1",
                type=_T.dropdown,
                text="I want to be remembered for:",
                options=["how deeply I loved.", "my sense of humor.", "my faith.", "my work ethic."],
            ),
            _Q(
                id="q6_2",
                type=_T.dropdown,
                text="A cause close to my heart is:",
                options=["protecting the environment.", "education.", "helping the poor.", "animal welfare."],
            ),
            _Q(
                id="q6_3",
                type=_T.dropdown,
                text="My hope for our family's future:",
                options=["Build generational wealth", "Stay close to one another", "Keep our traditions alive"],
            ),
            _Q(
                id="q6_4",
                type=_T.multiselect,
                text="The values I want to pass on:",
                options=["Faith", "Family", "Integrity", "Love", "Honesty", "Courage", "Gratitude"],
            ),
            _Q(
                id="q6_5",
                type=_T.text,
                text="After I'm gone, I would love:",
                placeholder=OWN_WORDS,
                max_length=CUSTOM_TEXT_MAX_LENGTH,
            ),
        ],
    ),
    Section(
        id=7,
        title="Final Thoughts",
        questions=[
            _Q(
                id="q7_1",
                type=_T.dropdown,
                text="Never forget:",
                options=["how much I love you.", "where you came from.", "to be kind."],
            ),
            _Q(
                id="q7_2",
                type=_T.dropdown,
                text="When times are hard, remember:",
                options=["you are stronger than you think.", "this too shall pass."],
            ),
            _Q(
                id="q7_3",
                type=_T.dropdown,
                text="My advice for difficult moments:",
                options=["stay calm and take things one step at a time.", "lean on each other."],
            ),
            _Q(id="q7_4", type=_T.textarea, text="A final message:", placeholder=VOICE_HINT),
            _Q(id=SIGNATURE_QUESTION_ID, type=_T.text, text="Sign your name:", required=True),
            _Q(id="q7_6", type=_T.text, text="A closing line:", placeholder=OWN_WORDS),
            _Q(
                id="q7_7",
                type=_T.dropdown,
                text="Sign-off:",
                options=["With all my love", "Forever yours", "Love always"],
            ),
        ],
    ),
    Section(
        id=8,
        title="Tone & Voice",
        questions=[
            _Q(id="q8_1", type=_T.dropdown, text="Overall tone:", options=["Warm and personal", "Formal", "Lighthearted"]),
            _Q(id="q8_2", type=_T.dropdown, text="Emotional intensity:", options=["Restrained", "Balanced emotions", "Deeply emotional"]),
            _Q(id="q8_3", type=_T.dropdown, text="Sentence length:", options=["Short and direct", "Mixed variety", "Long and flowing"]),
            _Q(id="q8_4", type=_T.dropdown, text="Affection:", options=["Reserved", "Warm", "Very warm and affectionate"]),
            _Q(id="q8_5", type=_T.dropdown, text="Formality:", options=["Casual", "Neutral", "Formal"]),
            _Q(id="q8_6", type=_T.dropdown, text="Humor:", options=["None", "Balanced", "Plenty"]),
            _Q(id="q8_7", type=_T.dropdown, text="Spirituality:", options=["None", "Light spiritual undertones", "Central to the letter"]),
            _Q(id="q8_8", type=_T.dropdown, text="Religious references:", options=["None", "Only subtle references", "Frequent references"]),
            _Q(id="q8_9", type=_T.dropdown, text="Faith tradition:", options=["Christian", "Jewish", "Muslim", "Other", "None"]),
            _Q(id="q8_10", type=_T.dropdown, text="Mention faith:", options=["Never", "Subtly", "Openly"]),
            _Q(id="q8_11", type=_T.dropdown, text="Personal detail:", options=["Private", "Moderately personal", "Very personal"]),
            _Q(id="q8_12", type=_T.dropdown, text="Poetic language:", options=["None", "Occasional poetic phrases", "Richly poetic"]),
            _Q(id="q8_13", type=_T.dropdown, text="Voice toward loved ones:", options=["Loving and tender", "Encouraging", "Matter-of-fact"]),
            _Q(id="q8_14", type=_T.dropdown, text="Letter length:", options=["Brief", "Moderate and balanced", "Long and detailed"]),
            _Q(
                id="q8_15",
                type=_T.dropdown,
                text="Contractions:",
                options=["Use contractions freely (I'm, I'll, don't)", "Avoid contractions"],
            ),
            _Q(id="q8_16", type=_T.dropdown, text="Topics to avoid:", options=["No restrictions", "Avoid money", "Avoid health"]),
            _Q(
                id="q8_17",
                type=_T.dropdown,
                text="Handwriting style:",
                options=["Classic Serif (Times New Roman)", "Elegant Script", "Modern Sans"],
            ),
        ],
    ),
)

TOTAL_SECTIONS = len(SECTIONS)

_QUESTIONS: dict[str, Question] = {q.id: q for section in SECTIONS for q in section.questions}

# Entity field types
_ENTITY_FIELD_TYPES: dict[str, QuestionType] = {
    "name": _T.text,
    "select": _T.dropdown,
    "type": _T.dropdown,
    "recipient": _T.text,
    "guidance": _T.textarea,
    "wishes": _T.textarea,
    "message": _T.voice,
    "story": _T.voice,
}


def get_section(section_id: int) -> Section:
    """Return section *section_id* (1-based).

    Raises:
        SectionOutOfRangeError: If the id is outside the catalog.
    """
    if not 1 <= section_id <= TOTAL_SECTIONS:
        raise SectionOutOfRangeError(section_id, TOTAL_SECTIONS)
    return SECTIONS[section_id - 1]


def find_question(question_id: str) -> Question:
    """Resolve a catalog or synthesized entity question id.

    Raises:
        QuestionNotFoundError: If nothing in the catalog owns *question_id*.
    """
    question = _QUESTIONS.get(question_id)
    if question is not None:
        return question

    parsed = parse_entity_key(question_id)
    if parsed is not None:
        spec, _index, field = parsed
        owner = _QUESTIONS[spec.prefix]
        field_type = _ENTITY_FIELD_TYPES[field]
        options = owner.options if field_type == _T.dropdown else []
        return Question(
            id=question_id,
            type=field_type,
            text=f"{owner.text}: {field}",
            options=options,
            max_length=CUSTOM_TEXT_MAX_LENGTH if field_type == _T.text else None,
        )

    story = parse_story_key(question_id)
    if story is not None:
        base_id, index = story
        owner = _QUESTIONS.get(base_id)
        if owner is not None and owner.type == _T.story and index >= 1:
            return owner.model_copy(update={"id": question_id})

    raise QuestionNotFoundError(question_id)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_text(question: Question, value: AnswerValue) -> AnswerValue:
    if not isinstance(value, str):
        raise InvalidAnswerError(f"{question.id} expects text")
    if question.max_length is not None and len(value) > question.max_length:
        raise InvalidAnswerError(f"{question.id} is limited to {question.max_length} characters")
    return value


def _validate_choice(question: Question, value: AnswerValue) -> AnswerValue:
    if not isinstance(value, str):
        raise InvalidAnswerError(f"{question.id} expects a single choice")
    if value and value not in question.options and len(value) > CUSTOM_TEXT_MAX_LENGTH:
        raise InvalidAnswerError(
            f"Custom answer for {question.id} is limited to {CUSTOM_TEXT_MAX_LENGTH} characters"
        )
    return value


def _validate_multi(question: Question, value: AnswerValue) -> AnswerValue:
    # A bare string is a single selection stored before the question became multi-choice
    if isinstance(value, str):
        value = [value] if value else []
    limit = question.max_selections or DEFAULT_MAX_SELECTIONS
    selected = [v for v in value if v in question.options]
    custom = [v for v in value if v not in question.options]
    if len(selected) > limit:
        raise InvalidAnswerError(f"Select up to {limit} options for {question.id}")
    if len(custom) > 1:
        raise InvalidAnswerError(f"Only one custom answer is allowed for {question.id}")
    if any(len(v) > CUSTOM_TEXT_MAX_LENGTH for v in custom):
        raise InvalidAnswerError(
            f"Custom answer for {question.id} is limited to {CUSTOM_TEXT_MAX_LENGTH} characters"
        )
    return value


def _reject_container(question: Question, value: AnswerValue) -> AnswerValue:
    raise InvalidAnswerError(f"{question.id} is answered through its repeatable blocks")


_VALIDATORS: dict[QuestionType, Callable[[Question, AnswerValue], AnswerValue]] = {
    _T.text: _validate_text,
    _T.textarea: _validate_text,
    _T.story: _validate_text,
    _T.voice: _validate_text,
    _T.dropdown: _validate_choice,
    _T.multiselect: _validate_multi,
    _T.multi_dropdown: _validate_multi,
    _T.child_section: _reject_container,
    _T.spouse_section: _reject_container,
    _T.asset_section: _reject_container,
}


def validate_answer(question: Question, value: AnswerValue) -> AnswerValue:
    """Check *value* against *question* and return its normalized form.

    Raises:
        InvalidAnswerError: If the value does not fit the question type.
    """
    return _VALIDATORS[question.type](question, value)
