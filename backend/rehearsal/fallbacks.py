"""
Deterministic local content used when the generative service is unavailable.

Every generator here is total over its inputs: no network, no exceptions.
Randomness comes only from the ``random.Random`` instance passed in, so a fixed
seed reproduces the same output.
"""

from __future__ import annotations

import random
import re
from typing import List, Optional, Tuple

from rehearsal.models import GeneratedQuestion

QUESTION_BANK: List[Tuple[str, str]] = [
    (
        "Given an array of integers nums and an integer target, return indices of the two numbers such that they "
        "add up to target. You may assume that each input would have exactly one solution, and you may not use the "
        "same element twice. You can return the answer in any order.",
        "def twoSum(nums, target):\n    # Your code here\n    pass",
    ),
    (
        "Given the head of a linked list, reverse the list and return the reversed list.",
        "# Definition for singly-linked list.\n"
        "# class ListNode:\n"
        "#     def __init__(self, val=0, next=None):\n"
        "#         self.val = val\n"
        "#         self.next = next\n"
        "\n"
        "def reverseList(head):\n    # Your code here\n    pass",
    ),
    (
        "Given a string s, return the longest palindromic substring in s.",
        "def longestPalindrome(s):\n    # Your code here\n    pass",
    ),
    (
        "Given n non-negative integers representing an elevation map where the width of each bar is 1, compute "
        "how much water it can trap after raining.",
        "def trap(height):\n    # Your code here\n    pass",
    ),
    (
        "Given an array of strings strs, group the anagrams together. You can return the answer in any order.",
        "def groupAnagrams(strs):\n    # Your code here\n    pass",
    ),
    (
        "Given the root of a binary tree, return the inorder traversal of its nodes' values.",
        "# Definition for a binary tree node.\n"
        "# class TreeNode:\n"
        "#     def __init__(self, val=0, left=None, right=None):\n"
        "#         self.val = val\n"
        "#         self.left = left\n"
        "#         self.right = right\n"
        "\n"
        "def inorderTraversal(root):\n    # Your code here\n    pass",
    ),
    (
        "Given an integer array nums, return all the triplets [nums[i], nums[j], nums[k]] such that i != j, "
        "i != k, and j != k, and nums[i] + nums[j] + nums[k] == 0.",
        "def threeSum(nums):\n    # Your code here\n    pass",
    ),
    (
        "Design a data structure that supports adding new words and finding if a string matches any previously "
        "added string.",
        "class WordDictionary:\n"
        "    def __init__(self):\n"
        "        # Initialize your data structure here\n"
        "        pass\n"
        "\n"
        "    def addWord(self, word):\n"
        "        # Add a word to the data structure\n"
        "        pass\n"
        "\n"
        "    def search(self, word):\n"
        "        # Returns true if word is in the data structure\n"
        "        pass",
    ),
    (
        "Given a binary tree, determine if it is a valid binary search tree (BST).",
        "# Definition for a binary tree node.\n"
        "# class TreeNode:\n"
        "#     def __init__(self, val=0, left=None, right=None):\n"
        "#         self.val = val\n"
        "#         self.left = left\n"
        "#         self.right = right\n"
        "\n"
        "def isValidBST(root):\n    # Your code here\n    pass",
    ),
    (
        "Implement a trie (prefix tree) data structure with insert, search, and startsWith methods.",
        "class Trie:\n"
        "    def __init__(self):\n"
        "        # Initialize your data structure here\n"
        "        pass\n"
        "\n"
        "    def insert(self, word):\n"
        "        # Insert a word into the trie\n"
        "        pass\n"
        "\n"
        "    def search(self, word):\n"
        "        # Returns if the word is in the trie\n"
        "        pass\n"
        "\n"
        "    def startsWith(self, prefix):\n"
        "        # Returns if there is any word in the trie that starts with the given prefix\n"
        "        pass",
    ),
    (
        "Given an m x n 2D binary grid grid which represents a map of '1's (land) and '0's (water), return the "
        "number of islands.",
        "def numIslands(grid):\n    # Your code here\n    pass",
    ),
    (
        "Design and implement a data structure for Least Recently Used (LRU) cache.",
        "class LRUCache:\n"
        "    def __init__(self, capacity):\n"
        "        # Initialize the LRU cache with positive size capacity\n"
        "        pass\n"
        "\n"
        "    def get(self, key):\n"
        "        # Return the value of the key if the key exists, otherwise return -1\n"
        "        pass\n"
        "\n"
        "    def put(self, key, value):\n"
        "        # Update the value of the key if the key exists. Otherwise, add the key-value pair to the cache\n"
        "        pass",
    ),
    (
        "Given a string containing digits from 2-9 inclusive, return all possible letter combinations that the "
        "number could represent.",
        "def letterCombinations(digits):\n    # Your code here\n    pass",
    ),
    (
        "Given an array nums of distinct integers, return all the possible permutations. You can return the "
        "answer in any order.",
        "def permute(nums):\n    # Your code here\n    pass",
    ),
    (
        "Given two sorted arrays nums1 and nums2 of size m and n respectively, return the median of the two "
        "sorted arrays.",
        "def findMedianSortedArrays(nums1, nums2):\n    # Your code here\n    pass",
    ),
]

RESUME_TIPS: List[str] = [
    "✓ Quantify your achievements with specific metrics and numbers",
    "✓ Use strong action verbs (e.g., 'Led', 'Developed', 'Implemented', 'Optimized')",
    "✓ Tailor your resume to the specific job you're applying for",
    "✓ Keep your resume concise - aim for 1-2 pages maximum",
    "✓ Include relevant technical skills and tools you've used",
    "✓ Highlight projects that demonstrate problem-solving abilities",
    "✓ Remove outdated or irrelevant experience",
    "✓ Use a clean, professional format with consistent styling",
    "✓ Include education, certifications, and relevant coursework",
    "✓ Proofread carefully for grammar and spelling errors",
    "✓ Focus on impact rather than responsibilities",
    "✓ Add links to your GitHub, LinkedIn, or portfolio if applicable",
    "✓ Use industry-specific keywords that ATS systems look for",
    "✓ Show progression and growth in your career path",
    "✓ Include leadership experience and teamwork examples",
]
RESUME_TIP_SAMPLE = 8

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"\d{3}[-.\s]?\d{3}[-.\s]?\d{4}")

_PLACEHOLDER_MARKERS = ("your code here", "todo")
_CONFIGURE_HINT = "Configure OPENAI_API_KEY for detailed, personalized AI-powered"


def format_elapsed(seconds: int) -> str:
    seconds = max(0, int(seconds or 0))
    return f"{seconds // 60}m {seconds % 60}s"


def _line_count(code: str) -> int:
    return len((code or "").split("\n"))


def _meaningful_lines(code: str) -> List[str]:
    lines = []
    for line in (code or "").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "//")):
            continue
        lines.append(stripped)
    return lines


def fallback_question(rng: random.Random) -> GeneratedQuestion:
    question, starter = QUESTION_BANK[rng.randrange(len(QUESTION_BANK))]
    return GeneratedQuestion(question=question, starter_code=starter)


def fallback_evaluation(question: str, code: str) -> str:
    """Checklist report built only from static properties of the submission."""
    body = _meaningful_lines(code)
    lower = (code or "").lower()
    only_pass = bool(body) and all(line in ("pass", "...") or line.startswith(("def ", "class ")) for line in body)
    has_placeholder = any(marker in lower for marker in _PLACEHOLDER_MARKERS)
    has_return = bool(re.search(r"\breturn\b", lower))
    has_loop = bool(re.search(r"\b(for|while)\b", lower))
    has_comments = any(line.strip().startswith(("#", "//")) for line in (code or "").splitlines())

    report = "## Solution Evaluation\n\n"
    report += "**Note:** AI evaluation unavailable. Here's a checklist to review your solution against:\n\n"

    report += "### Quick Stats\n"
    report += f"- Lines of code: {_line_count(code)} ({len(body)} non-comment)\n"
    report += f"- Returns a value: {'✓ Yes' if has_return else '○ No return statement found'}\n"
    report += f"- Uses iteration: {'✓ Yes' if has_loop else '○ No loops found'}\n"
    report += f"- Commented: {'✓ Yes' if has_comments else '○ Consider explaining non-obvious steps'}\n"
    if only_pass or has_placeholder:
        report += "- Status: ○ The solution still looks like starter code\n"
    report += "\n"

    report += "### Checklist\n"
    report += "- [ ] Correctness: does the solution return the right answer for the examples in the question?\n"
    report += "- [ ] Edge cases: empty input, single element, duplicates, negative numbers, very large input\n"
    report += "- [ ] Time complexity: state the Big-O and whether a faster approach exists\n"
    report += "- [ ] Space complexity: account for auxiliary data structures and recursion depth\n"
    report += "- [ ] Code quality: meaningful names, small functions, no dead code\n"
    report += "- [ ] Testing: walk through at least one example by hand before submitting\n"
    report += "- [ ] Communication: can you explain the approach and its tradeoffs in two minutes?\n\n"

    if re.search(r"\bdesign\b", (question or "").lower()):
        report += "### Design Considerations\n"
        report += "- [ ] Public API matches the operations described in the question\n"
        report += "- [ ] Each operation meets its expected complexity\n"
        report += "- [ ] Internal state stays consistent after every operation\n\n"

    report += "**Score:** N/A (manual review required)\n\n"
    report += f"**Tip:** {_CONFIGURE_HINT} evaluation."
    return report


def fallback_feedback(
    company: Optional[str],
    question: str,
    code: str,
    evaluation: Optional[str],
    time_spent_seconds: int,
) -> str:
    time_str = format_elapsed(time_spent_seconds)

    feedback = "## End of Interview Feedback\n\n"
    feedback += f"**Company Target:** {company or 'N/A'}\n"
    feedback += f"**Time Spent:** {time_str}\n"
    feedback += "**Note:** AI feedback unavailable. Here's a general assessment:\n\n"

    feedback += "### Session Summary\n"
    feedback += "You worked on a coding challenge "
    feedback += f"for {company} " if company else ""
    feedback += f"and spent {time_str} on the problem.\n\n"

    feedback += "### Your Solution\n"
    if code and len(code) > 50:
        feedback += f"✓ You wrote a substantial solution ({_line_count(code)} lines)\n"
    else:
        feedback += "○ Your solution appears incomplete - aim to write more comprehensive code\n"
    if evaluation:
        feedback += "✓ You received evaluation feedback on your solution\n"

    feedback += "\n### General Interview Performance Tips\n\n"
    feedback += "**Communication:**\n"
    feedback += "- Explain your thought process as you code\n"
    feedback += "- Ask clarifying questions about requirements\n"
    feedback += "- Discuss trade-offs between different approaches\n\n"
    feedback += "**Problem Solving:**\n"
    feedback += "- Start by understanding the problem fully\n"
    feedback += "- Consider multiple approaches before coding\n"
    feedback += "- Think about edge cases early\n"
    feedback += "- Plan your solution structure before implementing\n\n"
    feedback += "**Code Quality:**\n"
    feedback += "- Use meaningful variable and function names\n"
    feedback += "- Write clean, readable code\n"
    feedback += "- Handle edge cases and errors\n"
    feedback += "- Comment complex logic when necessary\n\n"
    feedback += "**Technical Skills:**\n"
    feedback += "- Know your data structures and when to use them\n"
    feedback += "- Understand time and space complexity\n"
    feedback += "- Practice common algorithm patterns\n"
    feedback += "- Be comfortable with your chosen language\n\n"

    feedback += "### Next Steps\n"
    feedback += "1. Review your solution and identify areas for improvement\n"
    feedback += "2. Practice similar problems to build pattern recognition\n"
    feedback += "3. Study solutions from others to learn new approaches\n"
    feedback += "4. Do more mock interviews to build confidence\n"
    feedback += "5. Focus on explaining your thinking clearly\n\n"

    feedback += "**Overall Assessment:** Keep practicing! The more interviews you do, the better you'll get.\n\n"
    feedback += f"**Tip:** {_CONFIGURE_HINT} interview feedback."
    return feedback


def fallback_resume_review(resume_text: str, rng: random.Random) -> str:
    text = resume_text or ""
    word_count = len(text.split())
    has_numbers = bool(re.search(r"\d+", text))
    has_email = bool(EMAIL_PATTERN.search(text))
    has_phone = bool(PHONE_PATTERN.search(text))
    selected_tips = rng.sample(RESUME_TIPS, RESUME_TIP_SAMPLE)

    review = "## Resume Review\n\n"
    review += "**Note:** AI review unavailable. Here's a general analysis:\n\n"

    review += "### Quick Stats\n"
    review += f"- Word Count: {word_count} words\n"
    review += f"- Contains Contact Info: {'✓ Yes' if has_email and has_phone else '✗ Missing email or phone'}\n"
    review += f"- Contains Metrics: {'✓ Yes' if has_numbers else '○ Consider adding numbers'}\n\n"

    review += "### General Resume Tips\n\n"
    for tip in selected_tips:
        review += f"{tip}\n"

    review += "\n### Key Areas to Focus On\n\n"
    review += "**1. Content Quality**\n"
    review += "- Use specific examples and quantifiable achievements\n"
    review += "- Focus on results and impact, not just duties\n"
    review += "- Tailor content to your target role\n\n"
    review += "**2. Formatting**\n"
    review += "- Ensure consistent formatting throughout\n"
    review += "- Use clear section headers\n"
    review += "- Keep layout clean and ATS-friendly\n\n"
    review += "**3. Technical Details**\n"
    review += "- List relevant technical skills prominently\n"
    review += "- Include tools, languages, and frameworks\n"
    review += "- Mention any certifications or special training\n\n"

    review += "**Overall Score:** 7/10 (Based on general best practices)\n\n"
    review += f"**Tip:** {_CONFIGURE_HINT} resume feedback."
    return review
