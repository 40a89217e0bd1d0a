"""Program version string."""

NAME = "XD"
MAJOR = "0"
MINOR = "4"
PATCH = "6"


def version(git: str = "", use_git: bool = False) -> str:
    """Version string, with the git revision appended when enabled."""
    text = f"{NAME}-{MAJOR}.{MINOR}.{PATCH}"
    if git and use_git:
        text += f"-{git}"
    return text