"""
Clinic Scribe: real-time dictation backend for clinic consultations

Owns the dictation lifecycle of a consultation, aggregates the
speaker-attributed transcript relayed from the doctor's browser and
requests structured clinical notes from the note-generation service.
"""

__version__ = "0.1.0"
__author__ = "Clinic Scribe Team"
__description__ = "Real-time dictation and clinical note backend"
