"""
ServeGate Modules - Black Box Architecture

Each module is a self-contained black box with:
- Clear interface (public API)
- Hidden implementation details
- Single responsibility
- Complete replaceability

Modules communicate only through well-defined interfaces.
"""
