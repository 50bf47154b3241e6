import pathlib

CSS_DIR = pathlib.Path(__file__).parent


def load_css(*names: str) -> str:
    chunks = []
    for name in names:
        path = CSS_DIR / name
        try:
            chunks.append(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            chunks.append(f"/* missing CSS file: {name} */")
    return "\n".join(chunks)
