"""Prompt templates and message builders.

All prompt construction goes through these functions so the analyzer,
aggregator and mentor share one canonical wording.
"""

import json
from textwrap import dedent
from typing import Any, Optional


ANALYSIS_SYSTEM_PROMPT = (
    "You are a career guidance AI that analyzes journal entries "
    "to help users discover their ideal career paths."
)

PREDICTION_SYSTEM_PROMPT = (
    "You are an expert career guidance AI that analyzes patterns "
    "in journal entries to predict ideal career paths."
)

TARGET_CAREER_COUNT = 3


def build_analysis_messages(content: str) -> list[dict[str, str]]:
    """Build the single-entry analysis request.

    Args:
        content: Raw journal text

    Returns:
        List of message dicts for the chat completion API
    """
    user_prompt = dedent("""
        Analyze this journal entry and extract:
        1. Emotions (as array of emotion names)
        2. Skills mentioned or demonstrated (as array)
        3. Interests or passions (as array)
        4. A brief summary (2-3 sentences)
        5. Key insights about career potential and growth areas
        6. A mood score from 1-10

        Journal entry:
        {content}

        Return as JSON with this exact structure:
        {{
          "emotions": ["emotion1", "emotion2"],
          "skills": ["skill1", "skill2"],
          "interests": ["interest1", "interest2"],
          "summary": "Brief summary here",
          "insights": "Career insights and growth areas",
          "moodScore": 7
        }}
    """).strip().format(content=content)

    return [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_prediction_messages(journal_summary: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Build the multi-entry career prediction request.

    Args:
        journal_summary: One dict per recent entry (truncated content plus
            emotions, skills, interests and insights)

    Returns:
        List of message dicts for the chat completion API
    """
    user_prompt = dedent("""
        Based on these journal entries, predict career paths that would be the best fit.
        Analyze recurring themes in emotions, skills demonstrated, interests, and growth patterns.

        Journal data:
        {journal_data}

        Return as JSON with this EXACT structure:
        {{
          "recommended": [
            {{
              "careerPath": "Career title",
              "confidenceScore": 85,
              "reasoning": "Why this career fits based on the journal patterns",
              "recommendedSkills": ["skill1", "skill2", "skill3"],
              "learningResources": [
                {{"title": "Resource 1", "type": "course", "url": "example.com"}},
                {{"title": "Resource 2", "type": "article", "url": "example.com"}}
              ]
            }}
          ],
          "avoid": [
            {{
              "careerPath": "Career to avoid",
              "reason": "Why this career may not be suitable based on patterns"
            }}
          ]
        }}

        Provide exactly {count} recommended careers and {count} careers to avoid.
    """).strip().format(
        journal_data=json.dumps(journal_summary, indent=2, ensure_ascii=False),
        count=TARGET_CAREER_COUNT,
    )

    return [
        {"role": "system", "content": PREDICTION_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_mentor_system_prompt(context_block: str, user_name: Optional[str] = None) -> str:
    """Build the mentor persona instruction with the user's context block embedded.

    Args:
        context_block: Output of ContextAssembler.build_context()
        user_name: Display name used to address the user, if known

    Returns:
        System prompt text
    """
    name_sentence = f" The user's name is {user_name}." if user_name else ""
    address_rule = (
        f"Always address the user as {user_name} in a warm, personal way"
        if user_name
        else "Address the user in a warm, personal way"
    )

    persona = dedent("""
        You are an empathetic and insightful AI career mentor named "CareerPath AI" analyzing THIS SPECIFIC USER's career journey.{name_sentence}

        {context_block}

        Your role is to:
        - {address_rule}
        - Reference and analyze THEIR ACTUAL journal data, emotions, skills, and interests shown above
        - Provide personalized advice based on THEIR specific patterns and career predictions
        - Help them understand why certain careers match or don't match their profile
        - Suggest actionable next steps for THEIR specific situation
        - Be supportive, encouraging, and data-driven in your responses

        CRITICAL INSTRUCTIONS:
        - DO NOT use phrases like "That's a great question" or similar generic openings
        - Always base your response on their ACTUAL data shown above
        - Be specific and reference their emotions, skills, mood scores, and career predictions
        - If they don't have enough data yet, encourage them to journal more
    """).strip()

    return persona.format(
        name_sentence=name_sentence,
        context_block=context_block,
        address_rule=address_rule,
    )
