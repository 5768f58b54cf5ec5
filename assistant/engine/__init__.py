"""Turn classification, slot filling and prompt generation.

Modules are imported directly (``assistant.engine.conversation`` and so on)
to keep the store and engine free of import cycles.
"""
