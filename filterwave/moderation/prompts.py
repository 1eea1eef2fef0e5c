"""Prompt template for the external classifier.

Uses ``{placeholder}`` syntax for substitution via ``str.format()``.
"""

CLASSIFICATION_PROMPT = """\
Analyze the following content for moderation purposes. Determine if it contains:
1. Hate speech or discriminatory language
2. Harassment or bullying
3. Explicit or inappropriate content
4. Spam or misleading information

Content: "{content}"

Respond with a JSON object containing:
- flagged: boolean (true if content should be flagged)
- confidence: number (0-1, confidence in the decision)
- categories: array of strings (categories that apply)
- reason: string (explanation of the decision)

Be strict but fair. Consider context and intent.
"""
