from aiusage.providers.amazon_q import AmazonQAdapter
from aiusage.providers.claude_code import ClaudeCodeAdapter
from aiusage.providers.cline import ClineAdapter
from aiusage.providers.codex_cli import CodexCliAdapter
from aiusage.providers.cursor import CursorAdapter
from aiusage.providers.gemini_cli import GeminiCliAdapter
from aiusage.providers.gemini_code_assist import GeminiCodeAssistAdapter
from aiusage.providers.github_copilot import GithubCopilotAdapter
from aiusage.providers.openai_codex import OpenAICodexAdapter
from aiusage.providers.opencode import OpenCodeAdapter
from aiusage.providers.replit import ReplitAdapter
from aiusage.providers.sourcegraph_cody import SourcegraphCodyAdapter
from aiusage.providers.tabnine import TabnineAdapter
from aiusage.providers.warp import WarpAdapter
from aiusage.providers.windsurf import WindsurfAdapter

__all__ = [
    "AmazonQAdapter",
    "ClaudeCodeAdapter",
    "ClineAdapter",
    "CodexCliAdapter",
    "CursorAdapter",
    "GeminiCliAdapter",
    "GeminiCodeAssistAdapter",
    "GithubCopilotAdapter",
    "OpenAICodexAdapter",
    "OpenCodeAdapter",
    "ReplitAdapter",
    "SourcegraphCodyAdapter",
    "TabnineAdapter",
    "WarpAdapter",
    "WindsurfAdapter",
]
