"""
Qualification analysis: business tier, store hours, kiosk proximity and rules
"""

from .qualification import QualificationService, QualificationResult

__all__ = ['QualificationService', 'QualificationResult']
