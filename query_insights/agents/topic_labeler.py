"""Topic labeling agent: short names for query clusters."""

import logging

from pydantic import BaseModel, Field

from query_insights.agents.base_agent import BaseAgent
from query_insights.config import settings

logger = logging.getLogger(__name__)


class TopicLabelInput(BaseModel):
    """Input for topic label agent."""

    queries: list[str] = Field(description="Normalized top queries of one cluster")


class TopicLabelOutput(BaseModel):
    """Output from topic label agent."""

    label: str = Field(description="Concise 2-4 word topic label")


class TopicLabelAgent(BaseAgent[TopicLabelInput, TopicLabelOutput]):
    """Agent that names a cluster of related search queries."""

    temperature = 0.3

    @property
    def system_prompt(self) -> str:
        return (
            "You are a topic labeling expert. Given a list of related search queries, "
            "provide a concise 2-4 word topic label that captures the common theme. "
            "Return only the label, without punctuation or explanation."
        )

    @property
    def output_type(self) -> type[TopicLabelOutput]:
        return TopicLabelOutput

    def _build_prompt(self, input_data: TopicLabelInput) -> str:
        query_list = "\n".join(f"- {q}" for q in input_data.queries)
        return f"These queries belong to the same topic:\n{query_list}\n\nTopic label:"


class AgentTopicLabeler:
    """TopicLabeler backed by TopicLabelAgent.

    Failures are logged and reported as ``None`` so the caller falls back to
    extractive labeling.
    """

    def __init__(self, agent: TopicLabelAgent | None = None) -> None:
        self._agent = agent or TopicLabelAgent()

    async def label_cluster(self, top_texts: list[str]) -> str | None:
        if not top_texts:
            return None
        try:
            output = await self._agent.run(TopicLabelInput(queries=top_texts))
        except Exception as e:
            logger.warning(
                "Topic labeling failed, using extractive fallback",
                extra={"query_count": len(top_texts), "error": str(e)},
            )
            return None
        return output.label.strip()


def build_topic_labeler() -> AgentTopicLabeler | None:
    """Create the configured labeler, or None when labeling is disabled."""
    if not settings.topic_labeling_enabled or not settings.openrouter_api_key:
        return None
    return AgentTopicLabeler()
