"""
Playground Tokenizer

This module implements the naive word-level tokenizer used by the attention
playground. Unlike the subword tokenizers of GPT or BERT, it does not learn a
vocabulary: it simply splits text on whitespace, optionally separating a small
set of punctuation marks into their own tokens first.

That is enough for the playground, where every token becomes one row and one
column of an attention heatmap. The rule is deliberately simple and
deterministic: the same input string always produces the same tokens.

Tokenization rule:
1. (Optional) Surround each punctuation mark in ". , ! ? ; :" with spaces
2. Split on runs of whitespace
3. Discard empty tokens

Example:
    "The lazy dog."  ->  ["The", "lazy", "dog", "."]     (split_punctuation=True)
    "The lazy dog."  ->  ["The", "lazy", "dog."]         (split_punctuation=False)

Classes:
    Tokenizer: Tokenizer with a configurable punctuation rule

Functions:
    tokenize: Tokenize a string with the default rule
"""

import re
from typing import List

# Punctuation marks that become standalone tokens
PUNCTUATION = ".,!?;:"

_PUNCTUATION_PATTERN = re.compile(r"([.,!?;:])")
_WHITESPACE_PATTERN = re.compile(r"\s+")


class Tokenizer:
    """
    Whitespace tokenizer with optional punctuation splitting.

    Attributes:
        split_punctuation: If True, punctuation marks in PUNCTUATION are
                           separated into their own tokens before splitting

    Example:
        >>> tokenizer = Tokenizer()
        >>> tokenizer.tokenize("Hello, world!")
        ['Hello', ',', 'world', '!']
        >>> Tokenizer(split_punctuation=False).tokenize("Hello, world!")
        ['Hello,', 'world!']
    """

    def __init__(self, split_punctuation: bool = True):
        """
        Initialize the tokenizer.

        Args:
            split_punctuation: Whether to separate punctuation into tokens
        """
        self.split_punctuation = split_punctuation

    def tokenize(self, text: str) -> List[str]:
        """
        Split text into an ordered list of string tokens.

        Token order is preserved: position i in the returned list is row and
        column i of the attention matrix built from it.

        Args:
            text: Raw input text (may be empty or whitespace only)

        Returns:
            List of non-empty tokens. Empty for empty/whitespace-only text.
        """
        if not text:
            return []

        # Step 1: Put spaces around punctuation so it splits off
        if self.split_punctuation:
            text = _PUNCTUATION_PATTERN.sub(r" \1 ", text)

        # Step 2: Split on whitespace runs, Step 3: drop empties
        return [token for token in _WHITESPACE_PATTERN.split(text) if token]

    def batch_tokenize(self, texts: List[str]) -> List[List[str]]:
        """
        Tokenize multiple texts at once.

        Args:
            texts: List of texts to tokenize

        Returns:
            List of token lists, one per input text
        """
        return [self.tokenize(text) for text in texts]

    def __repr__(self) -> str:
        return f"Tokenizer(split_punctuation={self.split_punctuation})"


def tokenize(text: str, split_punctuation: bool = True) -> List[str]:
    """Tokenize text with a throwaway Tokenizer."""
    return Tokenizer(split_punctuation=split_punctuation).tokenize(text)


# =============================================================================
# EDUCATIONAL DEMO
# Run with: python -m transformer_guide.tokenizer
# =============================================================================
if __name__ == "__main__":
    print("=" * 70)
    print("TOKENIZER DEMO - Splitting Text into Tokens")
    print("=" * 70)
    print()
    print("Attention works on tokens, not characters or sentences. Before we can")
    print("draw an attention heatmap we need to decide what the tokens are.")
    print()

    sentence = "The quick brown fox jumps over the lazy dog."

    print("-" * 70)
    print("1. WITH PUNCTUATION SPLITTING")
    print("-" * 70)
    tokens = tokenize(sentence)
    print(f"'{sentence}'")
    print(f"  -> {tokens}")
    print(f"  -> {len(tokens)} tokens")
    print()

    print("-" * 70)
    print("2. WITHOUT PUNCTUATION SPLITTING")
    print("-" * 70)
    tokens = tokenize(sentence, split_punctuation=False)
    print(f"'{sentence}'")
    print(f"  -> {tokens}")
    print(f"  -> {len(tokens)} tokens")
    print()

    print("Real LLM tokenizers (BPE, WordPiece) split words into subwords,")
    print("but a word-level split keeps the heatmap readable.")
    print()
    print("Next step: Run 'python -m transformer_guide.attention' to see the")
    print("           attention weights generated for these tokens.")
