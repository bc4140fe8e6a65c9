"""Structured output schemas requested from the LLM provider."""

from pydantic import BaseModel, Field


class PlannedQuery(BaseModel):
    """A single search query proposed by the planner."""

    query: str = Field(description="The search query")
    research_goal: str = Field(
        default="",
        description=(
            "First talk about the goal of the research that this query is meant "
            "to accomplish, then go deeper into how to advance the research once "
            "the results are found, mention additional research directions. Be as "
            "specific as possible, especially for additional research directions."
        ),
    )


class QueryPlanOutput(BaseModel):
    queries: list[PlannedQuery] = Field(default_factory=list)


class ExtractionOutput(BaseModel):
    learnings: list[str] = Field(default_factory=list, description="List of learnings")
    follow_up_questions: list[str] = Field(
        default_factory=list,
        description="List of follow-up questions to research the topic further",
    )


class ReportOutput(BaseModel):
    report_markdown: str = Field(description="Final report on the topic in Markdown")


class AnswerOutput(BaseModel):
    exact_answer: str = Field(
        description="The final answer, make it short and concise, just the answer, no other text"
    )


class FeedbackOutput(BaseModel):
    questions: list[str] = Field(
        default_factory=list,
        description="Follow up questions to clarify the research direction",
    )
