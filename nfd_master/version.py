VERSION = "0.8.0"


def get_version() -> str:
    return VERSION
