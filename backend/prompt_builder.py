# backend/prompt_builder.py
import re

QUERY_PROMPT_TEMPLATE = """You are an expert in GraphQL, tasked with generating GraphQL queries based on a GraphQL schema and a user story.

GraphQL Schema:
{schema_fence}graphql
{schema}
{schema_fence}

User Story:
{story_fence}text
{user_story}
{story_fence}

Generate a GraphQL query that satisfies the user story requirements.
Focus on creating a query that is efficient and follows GraphQL best practices.
Only include fields that are relevant to the user story.
Return ONLY the GraphQL query without any explanations.
"""

_BACKTICK_RUN = re.compile(r"`+")


def _fence_for(block: str) -> str:
    """Backtick fence strictly longer than any backtick run inside `block`."""
    longest = max((len(m) for m in _BACKTICK_RUN.findall(block)), default=0)
    return "`" * max(3, longest + 1)


def build_prompt(schema: str, user_story: str) -> str:
    """
    Build the instruction sent to the LLM. Both inputs are embedded verbatim;
    each gets its own fence so content can never terminate its block early.
    """
    if not schema or not user_story:
        raise ValueError("schema and user_story must be non-empty")
    return QUERY_PROMPT_TEMPLATE.format(
        schema=schema,
        user_story=user_story,
        schema_fence=_fence_for(schema),
        story_fence=_fence_for(user_story),
    )
