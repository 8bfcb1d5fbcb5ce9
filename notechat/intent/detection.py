"""Client-side intent detection: keyword prefilter and the instruction prompt."""

from __future__ import annotations

from collections.abc import Iterable

from notechat.core.types import ChatOptions

# A message must mention one of these before the model is asked
FILE_KEYWORDS = ("file", "note", "folder", "directory", "organize")

# Low temperature keeps the model on the JSON format
DETECTION_OPTIONS = ChatOptions(temperature=0.3, max_tokens=1000)

INTENT_PROMPT = """You are a file operation assistant. Analyze the user's request and determine if they want to perform file operations (create, modify, delete files or create folders).

User Request: "{message}"

Existing Notes:
{notes}

If the user wants to perform file operations, respond with a JSON object in this exact format:
{{
  "hasOperations": true,
  "operations": [
    {{
      "type": "create" | "modify" | "delete" | "create-folder",
      "path": "relative/path/from/notes/folder",
      "content": "file content here (only for create/modify)",
      "reason": "explanation of why this operation is needed"
    }}
  ],
  "summary": "Overall explanation of what will be done"
}}

If the request is about files but too vague to act on, respond with:
{{
  "needsClarification": true,
  "question": "what you need to know"
}}

If this is NOT a file operation request, respond with:
{{
  "hasOperations": false
}}

Guidelines:
- For create operations, ensure .md extension
- For modify operations, file must exist in the notes list
- Include helpful, descriptive content when creating notes
- Provide clear reasons for each operation
- Keep paths relative to the notes folder

Respond ONLY with valid JSON, no additional text."""


def looks_like_file_request(message: str) -> bool:
    """Cheap check run before spending a model call on intent detection."""
    lowered = message.lower()
    return any(keyword in lowered for keyword in FILE_KEYWORDS)


def build_intent_prompt(message: str, existing_notes: Iterable[str] = ()) -> str:
    """Fill the detection prompt with the user message and known note paths."""
    notes = "\n".join(f"- {name}" for name in existing_notes) or "(none provided)"
    return INTENT_PROMPT.format(message=message.replace('"', '\\"'), notes=notes)
