"""Code execution and validation for contest submissions.

Submitted code runs in a fresh child process (or container), its output
is captured and compared against the active problem's expected output.
"""
