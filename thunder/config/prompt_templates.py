"""
Thunder - Prompt Templates
===========================
Centralised prompt strings for the chat service.  All prompts live here
so they can be versioned and reviewed independently of application
logic.

Exports
-------
SYSTEM_PROMPT, GROUNDED_QUESTION_TEMPLATE, SUMMARY_PREFACE_TEMPLATE,
SUMMARIZATION_PROMPT, NO_REPLY_PLACEHOLDER, DEFAULT_CONVERSATION_TITLE.
"""

# ══════════════════════════════════════════════════════════════════════
#  ANSWER GENERATION
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT: str = "You are a helpful assistant. If you receive context, answer strictly based on it; otherwise answer generally and concisely."

# Final user turn when retrieval returned evidence.
# Placeholders: {context}, {question}
GROUNDED_QUESTION_TEMPLATE: str = "{context}\nQuestion: {question}\nAnswer:"

NO_REPLY_PLACEHOLDER: str = "(no reply)"


# ══════════════════════════════════════════════════════════════════════
#  CONVERSATION MEMORY
# ══════════════════════════════════════════════════════════════════════

SUMMARIZATION_PROMPT: str = "Be very brief. Summarise the dialogue below for memory."

# System message injected before the history window.
# Placeholder: {summary}
SUMMARY_PREFACE_TEMPLATE: str = "Previous summary: {summary}"


# ══════════════════════════════════════════════════════════════════════
#  CONVERSATIONS
# ══════════════════════════════════════════════════════════════════════

DEFAULT_CONVERSATION_TITLE: str = "New"
CONVERSATION_TITLE_LENGTH: int = 40
