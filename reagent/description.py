"""Listing descriptions written by Gemini."""

from __future__ import annotations

from reagent.config import settings


def build_prompt(
    project_name: str,
    address: str | None = None,
    global_instructions: str | None = None,
    image_count: int | None = None,
) -> str:
    located = f" located at {address}" if address else ""
    details = [f"- Property name: {project_name}"]
    if address:
        details.append(f"- Address: {address}")
    if global_instructions:
        details.append(f"- Style preferences: {global_instructions}")
    details.append(f"- Number of images: {image_count or 'multiple'}")

    return (
        f'Generate a compelling real estate listing description for a property called "{project_name}"{located}.\n\n'
        "Key details:\n"
        + "\n".join(details)
        + "\n\n"
        "Please write a professional, engaging real estate listing description (1500-2000 characters) "
        "that would appeal to potential buyers or renters. Focus on the property's appeal, lifestyle "
        "benefits, and key selling points. Make it suitable for platforms like Rightmove, Zoopla, or "
        "similar real estate listing sites.\n\n"
        "The description should be written in a natural, professional tone that real estate agents would use."
    )


def generate_description(prompt: str) -> str:
    """Single prompt/response call. Blocking; run it in a thread pool."""
    if not settings.gemini_api_key:
        raise RuntimeError("Gemini API key is not configured")
    import google.generativeai as genai

    genai.configure(api_key=settings.gemini_api_key)
    model = genai.GenerativeModel(settings.gemini_model)
    response = model.generate_content(prompt)
    return response.text.strip()
