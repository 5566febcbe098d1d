"""Default prompt templates loaded into an empty record store."""

import logging

from .store import Prompt, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_PROMPTS = [
    (
        "YouTube Title",
        """Your role is to generate three titles for a YouTube video.

Below you will receive a transcription of this video; use it to generate the titles.
Each title must be at most 60 characters long.
The titles must be catchy and attractive to maximize clicks.

Return ONLY the three titles as a list, as in the example below:
'''
- Title 1
- Title 2
- Title 3
'''

Transcription:
'''
{transcription}
'''""",
    ),
    (
        "YouTube Description",
        """Your role is to generate a succinct summary for a YouTube video.

Below you will receive a transcription of this video; use it to generate the summary.

The summary must be at most 80 words, written in the first person and in the
same language as the transcription. It should be easy to read and engaging.
Avoid lengthy descriptions and prefer direct, objective sentences.

Below the summary, list 3 to 10 lowercase hashtags that are relevant to the video.

The return must follow the format below:
'''
Description.

#hashtag1 #hashtag2 #hashtag3 ...
'''

Transcription:
'''
{transcription}
'''""",
    ),
]


def seed_prompts(store: RecordStore) -> list[Prompt]:
    """Insert the default prompts unless the store already holds some."""
    if store.list_prompts():
        logger.info("Prompts already present, skipping seed")
        return []
    created = [store.create_prompt(title, template) for title, template in DEFAULT_PROMPTS]
    logger.info("Seeded %d prompts", len(created))
    return created
