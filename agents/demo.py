"""Canned agent replies for demo mode and for the dashboard's sample toggle."""

import asyncio
import json
import logging
from datetime import datetime, timezone

from agents.base import AgentCaller, AgentResult
from config import settings

logger = logging.getLogger(__name__)

SAMPLE_SCAN_PAYLOAD = {
    "pipeline_status": "completed",
    "hn_results": {
        "stories": [
            {
                "title": "GPT-5 Architecture Leaked: Sparse Mixture of Experts at Scale",
                "url": "https://news.ycombinator.com/item?id=39012345",
                "hn_score": 847,
                "comments_count": 312,
                "category": "AI/ML",
                "relevance_score": 95,
                "summary": "A breakdown of the rumored GPT-5 architecture: a sparse mixture-of-experts model with novel routing.",
                "source_type": "top",
            },
            {
                "title": "Show HN: Open-source alternative to Cursor IDE with local models",
                "url": "https://news.ycombinator.com/item?id=39012346",
                "hn_score": 523,
                "comments_count": 189,
                "category": "Developer Tools",
                "relevance_score": 88,
                "summary": "An open-source IDE that runs local LLMs for completion, refactoring and debugging.",
                "source_type": "show_hn",
            },
            {
                "title": "Critical vulnerability in widely-used SSH library affects millions",
                "url": "https://news.ycombinator.com/item?id=39012347",
                "hn_score": 634,
                "comments_count": 245,
                "category": "Cybersecurity",
                "relevance_score": 82,
                "summary": "A buffer overflow in libssh2 allows remote code execution. Patches are rolling out.",
                "source_type": "top",
            },
            {
                "title": "YC W25 batch includes 15 AI agent startups",
                "url": "https://news.ycombinator.com/item?id=39012348",
                "hn_score": 412,
                "comments_count": 156,
                "category": "Startups",
                "relevance_score": 76,
                "summary": "The Winter 2025 batch is heavily weighted toward AI agent companies.",
                "source_type": "new",
            },
        ],
        "total_fetched": 150,
        "total_filtered": 4,
    },
    "arxiv_results": {
        "papers": [
            {
                "title": "Efficient Attention Mechanisms for Long-Context Language Models",
                "authors": "Zhang, Wei et al.",
                "abstract_summary": "A linear attention mechanism with O(n) memory enabling 1M+ token context windows.",
                "arxiv_link": "https://arxiv.org/abs/2502.12345",
                "category": "AI/ML",
                "relevance_score": 92,
                "novelty_score": 88,
                "applicability_score": 85,
            },
            {
                "title": "Self-Improving Code Generation via Iterative Refinement",
                "authors": "Park, Kim et al.",
                "abstract_summary": "LLMs improve their own code through self-debugging and test-driven refinement.",
                "arxiv_link": "https://arxiv.org/abs/2502.12347",
                "category": "AI/ML",
                "relevance_score": 85,
                "novelty_score": 76,
                "applicability_score": 90,
            },
        ],
        "total_fetched": 80,
        "total_filtered": 2,
    },
    "thread_drafts": [
        {
            "id": "draft-001",
            "title": "GPT-5 Architecture Deep Dive",
            "classification": "TECH DEEP DIVE",
            "thread_content": (
                "The GPT-5 architecture has been revealed.\n\nHere is what we know:\n---\n"
                "1/ Sparse Mixture of Experts with 1.8T parameters, ~200B active at inference.\n---\n"
                "2/ A routing mechanism picks expert combinations by query complexity.\n---\n"
                "The efficiency gains alone could widen access to frontier models."
            ),
            "hashtags": "#GPT5 #AI #MachineLearning",
            "hook": "The GPT-5 architecture has been revealed.",
            "requires_review": False,
            "review_reason": "",
            "source_url": "https://news.ycombinator.com/item?id=39012345",
            "relevance_score": 95,
        },
        {
            "id": "draft-002",
            "title": "Critical SSH Vulnerability Alert",
            "classification": "TECH DEEP DIVE",
            "thread_content": (
                "A major vulnerability in libssh2 affects millions of servers.\n---\n"
                "1/ Buffer overflow allows remote code execution.\n---\n"
                "2/ Patches are available now. Update immediately."
            ),
            "hashtags": "#Cybersecurity #InfoSec #SSH",
            "hook": "A major vulnerability in libssh2 affects millions of servers.",
            "requires_review": True,
            "review_reason": "Security content - verify patch details and CVE reference before posting",
            "source_url": "https://news.ycombinator.com/item?id=39012347",
            "relevance_score": 82,
        },
        {
            "id": "draft-003",
            "title": "YC W25 AI Agent Startups",
            "classification": "JOB POST + PREP THREAD",
            "thread_content": (
                "Y Combinator W25 just revealed 15 AI agent startups.\n---\n"
                "1/ Support agents that close most tickets on their own.\n---\n"
                "2/ Code agents that go from ticket to PR in minutes."
            ),
            "hashtags": "#YCombinator #Startups #AIAgents #Hiring",
            "hook": "Y Combinator W25 just revealed 15 AI agent startups.",
            "requires_review": False,
            "review_reason": "",
            "source_url": "https://news.ycombinator.com/item?id=39012348",
            "relevance_score": 76,
        },
        {
            "id": "draft-004",
            "title": "Breakthrough: 1M Token Context Windows",
            "classification": "RESEARCH SUMMARY THREAD",
            "thread_content": (
                "New research tackles the long-context problem for LLMs.\n---\n"
                "1/ Linear attention that approximates full attention at O(n) memory.\n---\n"
                "2/ Whole codebases fit in a single prompt."
            ),
            "hashtags": "#AIResearch #LLM #NLP",
            "hook": "New research tackles the long-context problem for LLMs.",
            "requires_review": False,
            "review_reason": "",
            "source_url": "https://arxiv.org/abs/2502.12345",
            "relevance_score": 92,
        },
    ],
    "total_drafts": 4,
    "auto_approved": 3,
    "flagged_for_review": 1,
    "scan_timestamp": "2025-02-21T14:30:00Z",
}


class DemoAgentCaller(AgentCaller):
    """Answers like the real agents, wrapped the way the platform wraps them."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
        if self.delay:
            await asyncio.sleep(self.delay)

        if agent_id == settings.twitter_agent_id:
            payload = {
                "post_status": "success",
                "tweet_url": "https://x.com/demo/status/1",
                "posted_content": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "error_message": "",
            }
        else:
            payload = SAMPLE_SCAN_PAYLOAD

        logger.info("Demo agent %s answered (%s)", agent_id, task or "call")
        # The platform often delivers the schema as a JSON string under result.text
        return AgentResult(
            success=True,
            response={"status": "success", "result": {"text": json.dumps(payload)}},
        )
