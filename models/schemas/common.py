PROFANE_WORDS = ("kerfuffle", "sharbert", "fornax")
MASK = "****"


def clean_body(body: str) -> str:
    """Mask every occurrence of a profane word."""
    for word in PROFANE_WORDS:
        body = body.replace(word, MASK)
    return body
