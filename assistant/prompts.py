"""
Prompt Builder.

Renders one persona prompt per user turn. The function is pure: the same
persona, utterance and display name always give the same prompt, and the
user's words are embedded verbatim.
"""

from assistant.models import PersonaConfig


def build_prompt(
    persona: PersonaConfig,
    utterance: str,
    display_name: str | None = None,
) -> str:
    """
    Compose the full prompt sent to the generation endpoint.

    Args:
        persona: Instruction template and tone of the assistant.
        utterance: The user's message, embedded exactly as given.
        display_name: Optional name of the signed-in user.

    Returns:
        The rendered prompt text.
    """
    sections = [persona.system_instructions.strip()]

    if display_name and display_name.strip():
        sections.append(
            f"The person you are talking to is called {display_name.strip()}. "
            "Address them by name when it feels natural."
        )

    sections.append(f"{persona.utterance_label}: {utterance}")

    if persona.closing:
        sections.append(persona.closing.strip())

    return "\n\n".join(sections)
