import logging
from typing import Dict, Iterable, Optional, Set, Tuple


def resolve_folder_path(numeric_path: Optional[str], folder_names: Dict[str, str]) -> str:
    """
    Turns a stored folder path such as "1/4/17/" into "Trips/Italy".
    Each segment is a folder modelId; unnamed folders drop out.
    """
    if not numeric_path:
        return ""
    names = []
    for segment in numeric_path.split("/"):
        segment = segment.strip()
        if not segment:
            continue
        name = folder_names.get(segment)
        if name is None:
            logging.debug(f"Unknown folder id {segment} in path {numeric_path!r}")
            name = segment
        if name:
            names.append(name)
    return "/".join(names).strip("/")


def resolve_album_path(album_name: str, numeric_path: Optional[str], folder_names: Dict[str, str]) -> str:
    parent = resolve_folder_path(numeric_path, folder_names)
    path = f"{parent}/{album_name}" if parent else album_name
    return path.strip("/")


def resolve_albums(rows: Iterable[Tuple[str, Optional[str]]], folder_names: Dict[str, str]) -> Set[str]:
    return {resolve_album_path(name, path, folder_names) for name, path in rows}
