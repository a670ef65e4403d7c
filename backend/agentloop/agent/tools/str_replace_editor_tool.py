"""
String replace editor tool for the built-in service

Replaces a literal string or a regular expression either in text passed
inline (``content``) or in a file edited in place (``path``).
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from pydantic import Field, field_validator, model_validator

from ..core.runtime.models import FailureKind
from .base_tool import BaseTool, ToolArguments, ToolResult

logger = logging.getLogger(__name__)


class StrReplaceEditorArguments(ToolArguments):
    pattern: str = Field(description="Text to find; a regular expression when use_regex is true")
    replacement: str = Field(description="Replacement text; regex group references are allowed with use_regex")
    content: Optional[str] = Field(None, description="Text to edit (give either content or path)")
    path: Optional[str] = Field(
        None, description="File to edit in place; relative paths resolve against the workspace root"
    )
    replace_all: bool = Field(True, description="Replace every match instead of only the first")
    case_sensitive: bool = Field(True, description="Match case exactly")
    use_regex: bool = Field(False, description="Treat pattern as a regular expression")
    encoding: str = Field("utf-8", description="File encoding (path only)")

    @field_validator("pattern")
    @classmethod
    def pattern_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("pattern cannot be empty")
        return v

    @model_validator(mode="after")
    def one_target(self) -> "StrReplaceEditorArguments":
        if (self.content is None) == (self.path is None):
            raise ValueError("give exactly one of content or path")
        return self


def replace_text(
    content: str,
    pattern: str,
    replacement: str,
    replace_all: bool = True,
    case_sensitive: bool = True,
    use_regex: bool = False,
) -> Tuple[str, int]:
    """Return the edited text and the number of replacements made"""
    flags = 0 if case_sensitive else re.IGNORECASE
    regex = re.compile(pattern if use_regex else re.escape(pattern), flags)
    # Literal mode must not expand backslashes in the replacement
    repl = replacement if use_regex else (lambda _match: replacement)
    return regex.subn(repl, content, count=0 if replace_all else 1)


class StrReplaceEditorTool(BaseTool):
    """Tool for pattern replacement in text or files"""

    args_model = StrReplaceEditorArguments

    def __init__(self, workspace_root: Optional[str] = None):
        super().__init__()
        self.name = "str_replace_editor"
        self.description = (
            "Replace a string or regular expression in the given content, or in a file "
            "edited in place. Reports how many matches were replaced."
        )
        self.workspace_root = Path(workspace_root or os.getcwd())

    def _resolve(self, raw_path: str) -> Path:
        path = Path(raw_path).expanduser()
        if not path.is_absolute():
            path = self.workspace_root / path
        return path

    async def execute(self, **kwargs) -> ToolResult:
        pattern = kwargs.get("pattern")
        if not pattern:
            return ToolResult(success=False, error="pattern is required", kind=FailureKind.validation_error)
        options = {
            "replace_all": kwargs.get("replace_all", True),
            "case_sensitive": kwargs.get("case_sensitive", True),
            "use_regex": kwargs.get("use_regex", False),
        }
        replacement = kwargs.get("replacement", "")
        logger.info(f"Replacing {pattern!r} (regex={options['use_regex']})")

        try:
            if kwargs.get("path"):
                return await self._edit_file(self._resolve(kwargs["path"]), pattern, replacement,
                                             kwargs.get("encoding") or "utf-8", options)

            result, count = replace_text(kwargs.get("content") or "", pattern, replacement, **options)
            return ToolResult(success=True, data=json.dumps(
                {"result": result, "match_count": count, "replaced": count > 0}
            ))
        except re.error as e:
            return ToolResult(success=False, error=f"Invalid regular expression: {e}", kind=FailureKind.validation_error)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"String replacement failed: {e}")
            return ToolResult(success=False, error=f"String replacement failed: {e}")

    async def _edit_file(self, path: Path, pattern: str, replacement: str, encoding: str, options) -> ToolResult:
        if not path.is_file():
            return ToolResult(success=False, error=f"File not found: {path}")
        async with aiofiles.open(path, "r", encoding=encoding) as f:
            original = await f.read()

        result, count = replace_text(original, pattern, replacement, **options)
        if count:
            async with aiofiles.open(path, "w", encoding=encoding) as f:
                await f.write(result)
            logger.info(f"Replaced {count} match(es) in {path}")
        return ToolResult(success=True, data=json.dumps(
            {"path": str(path), "match_count": count, "replaced": count > 0}
        ))
