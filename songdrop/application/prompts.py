from typing import List


# Example inputs below are invented names; the model is told not to process them.
SONG_EXTRACTION_INSTRUCTIONS = """### Strip artist credits from a song title

**Remove:**

* Everything **before** a `-` or `:` separator (that part names the artists)
* Any `(feat. ...)`, `(ft. ...)` or `(featuring ...)` clause, wherever it appears

**Keep:**

* Only the song name itself, trimmed. No featuring credits, no artist names.

**List in `artist`:** every artist mentioned, in the order they appear: the names from the
removed prefix first, then the featured names from the removed clause.

**Answer with JSON only. No greeting, no commentary.**

---

### Examples (FAKE DATA, DO NOT PROCESS)

Input: `Copper Tide - Salt Meridian (ft. Wren Halloway)`
Output:

```json
{"title": "Salt Meridian", "artist": ["Copper Tide", "Wren Halloway"]}
```

Input: `Glass Orchard & Tin Lantern - Paper Harbor`
Output:

```json
{"title": "Paper Harbor", "artist": ["Glass Orchard", "Tin Lantern"]}
```

Input: `Velvet Comet: Northbound (featuring Ash Meridian)`
Output:

```json
{"title": "Northbound", "artist": ["Velvet Comet", "Ash Meridian"]}
```

Input: `Quiet Static (feat. Rowan Pike & Elm Signal)`
Output:

```json
{"title": "Quiet Static", "artist": ["Rowan Pike", "Elm Signal"]}
```"""


# Response schema in the OpenAPI subset accepted by structured generation
SONG_INFO_SCHEMA = {
    'type': 'OBJECT',
    'required': ['title', 'artist'],
    'properties': {
        'title': {
            'type': 'STRING',
            'description': 'Song title with artist names and featuring credits removed',
        },
        'artist': {
            'type': 'ARRAY',
            'description': 'Every artist in the order they appear in the original text',
            'items': {'type': 'STRING'},
        },
    },
}


def build_extraction_prompt(query: str) -> List[str]:
    """Prompt parts for the extraction task: fixed instructions, then the query to process."""
    return [
        SONG_EXTRACTION_INSTRUCTIONS,
        f"# Process this one:\n\n**Input:**\n`{query}`",
    ]
