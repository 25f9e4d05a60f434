"""Supported target languages for generated code."""

LANGUAGES = {
    "typescript": {
        "label": "TypeScript",
        "fence": "typescript",
    },
    "python": {
        "label": "Python",
        "fence": "python",
    },
    "go": {
        "label": "Go",
        "fence": "go",
    },
    "java": {
        "label": "Java",
        "fence": "java",
    },
    "rust": {
        "label": "Rust",
        "fence": "rust",
    },
}


def is_supported(language):
    return isinstance(language, str) and language in LANGUAGES


def fence_tag(language):
    """Code-fence tag for a language, falling back to the raw value."""
    return LANGUAGES.get(language, {}).get("fence", language)


def list_languages():
    return [{"value": key, "label": cfg["label"]} for key, cfg in LANGUAGES.items()]
