"""
Hooshyar - Health Information Assistant

Explains health topics in Persian for two audiences (the general public
and clinical staff) using a generative-language service, and exports the
answer as a right-to-left Word document.

IMPORTANT: This is NOT a diagnosis tool. It must NEVER replace a doctor.
"""

__version__ = "1.0.0"
__author__ = "Hooshyar Team"
