from guardian.models import Pattern, PatternLibrary


FORBIDDEN_ENDINGS = (
    Pattern(name="one_day_at_a_time", regex=r"one day at a time", category="forbidden_ending"),
    Pattern(
        name="determination_to_protect",
        regex=r"(I|we|they) (would|will|must) .*(protect|ensure|make sure)",
        category="forbidden_ending",
    ),
    Pattern(
        name="even_gods_had_to",
        regex=r"even (gods|people|characters) (had to|must|need to)",
        category="forbidden_ending",
    ),
    Pattern(
        name="this_was_and_going_to",
        regex=r"(this was|that was) .* and (I|we|they) (was|were) going to",
        category="forbidden_ending",
    ),
    Pattern(
        name="standing_back_to_survey",
        regex=r"standing (back|there) to (survey|appreciate|marvel|contemplate)",
        category="forbidden_ending",
    ),
    Pattern(name="handle_the_basics", regex=r"\. \w+ had to handle the basics", category="forbidden_ending"),
    Pattern(name="fortune_cookie", regex=r"fortune cookie", category="forbidden_ending"),
)

EMOTION_LABELS = (
    Pattern(
        name="i_felt_emotion",
        regex=r"I felt (angry|sad|happy|scared|worried|anxious|nervous|excited)",
        category="emotion_label",
    ),
    Pattern(
        name="pronoun_seemed_emotion",
        regex=r"(he|she|they) (seemed|appeared|looked) (sad|happy|angry|worried|nervous)",
        category="emotion_label",
    ),
    Pattern(
        name="i_was_emotion",
        regex=r"I was (angry|sad|happy|scared|terrified|elated)",
        category="emotion_label",
    ),
)

# Presence heuristic: any keyword in the ending window counts as a concrete ending.
GOOD_ENDING_KEYWORDS = {
    "physical_action": (
        "grabbed", "reached", "turned", "walked", "opened", "closed",
        "pulled", "pushed", "picked up", "set down",
    ),
    "dialogue": ('"', "said", "asked", "called", "muttered", "whispered"),
    "sensory": (
        "heard", "saw", "felt", "smelled", "tasted",
        "buzzed", "rang", "slammed", "creaked",
    ),
    "interruption": (
        "door opened", "phone rang", "alarm", "knock", "crash",
        "footsteps", "voice",
    ),
}

DIALOGUE_FORMALITY = Pattern(
    name="formal_construction",
    regex=r"\b(I am|we are|they are|he is|she is)\b",
    category="formality",
)

FORMALITY_EXEMPTION = Pattern(
    name="formal_register",
    regex=r"formal|lord|lady|your (majesty|highness)",
    category="formality_exemption",
)

DEFAULT_LIBRARY = PatternLibrary(
    forbidden_endings=FORBIDDEN_ENDINGS,
    emotion_labels=EMOTION_LABELS,
    good_ending_keywords=GOOD_ENDING_KEYWORDS,
    dialogue_formality=DIALOGUE_FORMALITY,
    formality_exemption=FORMALITY_EXEMPTION,
)
