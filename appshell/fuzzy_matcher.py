"""Fuzzy matching utilities for app search."""

from typing import List


def damerau_levenshtein(a: str, b: str) -> int:
    """
    Compute the Damerau-Levenshtein (optimal string alignment) distance.
    
    Counts the minimum number of single-character insertions, deletions,
    substitutions or adjacent transpositions needed to turn `a` into `b`.
    
    Args:
        a: First string
        b: Second string
        
    Returns:
        Non-negative edit distance
    """
    len_a = len(a)
    len_b = len(b)
    
    if len_a == 0:
        return len_b
    if len_b == 0:
        return len_a
    
    # (len_a + 1) x (len_b + 1) distance table
    d: List[List[int]] = [[0] * (len_b + 1) for _ in range(len_a + 1)]
    for i in range(len_a + 1):
        d[i][0] = i
    for j in range(len_b + 1):
        d[0][j] = j
    
    for i in range(1, len_a + 1):
        for j in range(1, len_b + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            
            d[i][j] = min(
                d[i - 1][j] + 1,         # deletion
                d[i][j - 1] + 1,         # insertion
                d[i - 1][j - 1] + cost,  # substitution
            )
            
            # Transposition of two adjacent characters
            if i > 1 and j > 1 and a[i - 1] == b[j - 2] and a[i - 2] == b[j - 1]:
                d[i][j] = min(d[i][j], d[i - 2][j - 2] + cost)
    
    return d[len_a][len_b]


# Short alias used by the search code
distance = damerau_levenshtein


def fuzzy_score(query: str, text: str) -> float:
    """
    Score how well `query` matches `text` (0 = perfect match, 1 = no match).
    
    A case-insensitive substring hit scores 0. Otherwise the query is
    compared against every whitespace-delimited word of the text and against
    the first len(query) + 2 characters of the whole text; the best
    normalized distance wins.
    
    Args:
        query: Search query
        text: Candidate text (name, description or category)
        
    Returns:
        Score in [0, 1]
    """
    q = (query or "").lower()
    t = (text or "").lower()
    
    if not q or not t:
        return 1.0
    
    # Exact match or contains
    if q in t:
        return 0.0
    
    best_score = float("inf")
    
    for word in t.split():
        word_distance = damerau_levenshtein(q, word)
        best_score = min(best_score, word_distance / max(len(q), len(word)))
    
    # Also check the start of the full text for multi-word partial matches
    prefix_distance = damerau_levenshtein(q, t[:len(q) + 2])
    best_score = min(best_score, prefix_distance / max(len(q), len(t)))
    
    return min(best_score, 1.0)


# Short alias used by the search code
score = fuzzy_score


__all__ = [
    "damerau_levenshtein",
    "distance",
    "fuzzy_score",
    "score",
]
