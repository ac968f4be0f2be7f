"""
Compiler driver: whole-module checking and rendering
"""

from .driver import CodegenDriver, CodegenResult, DeclarationResult

__all__ = ['CodegenDriver', 'CodegenResult', 'DeclarationResult']
