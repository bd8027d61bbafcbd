from typing import Optional

SYSTEM_PROMPT = "You are a careful educational assistant. Output strictly VALID JSON and nothing else."


def quiz_prompt(number: int) -> str:
    return f"""
    You are an expert quiz generator. Using the flashcards in the uploaded file (a JSON list of
    objects with "id", "term" and "definition"), create a multiple-choice quiz.

    Requirements:
    - Generate exactly {number} questions. Not more, not fewer.
    - Each question must be clear, relevant and derived from the flashcard content.
    - Rephrase instead of copying the flashcard wording.
    - Each question has exactly 4 choices and exactly one of them is correct.
    - Distractors must be plausible but incorrect.
    - Mix direct recall, application-based and conceptual questions.
    - Never build questions from the ids. Use them only to fill "related_flashcard_id".
    - If the flashcards are not enough for {number} questions, return
      {{ "quiz": [], "errorMessage": "Insufficient flashcards to generate {number} questions." }}

    JSON Output Format:
    {{
      "quiz": [
        {{
          "question": "Which notation describes the lower bound of an algorithm's growth rate?",
          "related_flashcard_id": "jkfzboKhtkyRF80VHn7E",
          "choices": [
            {{ "text": "Big Omega Notation", "is_correct": true }},
            {{ "text": "Big Theta Notation", "is_correct": false }},
            {{ "text": "Big O Notation", "is_correct": false }},
            {{ "text": "Amortized Analysis", "is_correct": false }}
          ]
        }}
      ],
      "errorMessage": null
    }}
    """


def moderation_prompt() -> str:
    return """
    You are a content moderator for study flashcards. The uploaded file contains definition-term
    pairs. Review every pair and flag any content with:
    - hate speech, discrimination, profanity or offensive language;
    - sexual, violent or disturbing content;
    - misinformation or factually incorrect definitions (cross-check with common knowledge);
    - anything harmful, unethical or against academic integrity.

    JSON Output Format:
    {
      "overall_verdict": {
        "is_appropriate": false,
        "moderation_decision": "content is inappropriate",
        "flagged_cards": [
          { "term": "...", "definition": "...", "reason": "Why it is inappropriate." }
        ]
      }
    }
    When everything is fine, "is_appropriate" is true and "flagged_cards" is an empty list.
    """


def flashcard_prompt(
    topic: Optional[str],
    subject: Optional[str],
    extra_description: Optional[str],
    number: int,
) -> str:
    prompt = "Act as a professor giving students academic terms and their definitions. "
    if subject:
        prompt += f"The subject is **{subject}**. "
    if topic:
        prompt += f"The topic is **{topic}**. "
    if extra_description:
        prompt += f"Additional context: {extra_description}. "

    return prompt + f"""
    Instructions:
    - Provide exactly **{number}** academic terms with their definitions.
    - Terms must be concise, relevant and clearly defined.
    - Definitions have at most two sentences.
    - No computations, numeric exercises or trivia questions.
    - Avoid terms starting with "Who", "What", "Where" or "When".
    - Refuse non-academic, offensive or inappropriate requests.

    JSON Output Format:
    {{ "terms_and_definitions": [{{ "term": "Variable", "definition": "A symbol representing an unknown value." }}] }}
    """
