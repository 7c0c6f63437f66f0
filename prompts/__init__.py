"""
prompts/ — All LLM prompt templates for homework-watch.

One file per component. Import the prompt constant you need:

    from prompts.summarizer import CHANGE_SUMMARY_SYSTEM_PROMPT, CHANGE_SUMMARY_USER_PROMPT
"""
