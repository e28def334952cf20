system_template = """
    You are a professional video content analyst who splits videos into
    topical segments and summarizes each one.
    Always answer with a single JSON object and nothing else.
    """

segmentation_template = """
    Analyze the subtitles of the following YouTube video and split them into
    {min_segments}-{max_segments} logical segments by topic.

    Video title: {title}

    Subtitles:
    {transcript}

    Return JSON with exactly this structure:
    {{
      "segments": [
        {{
          "id": "unique segment id",
          "startTime": <start time in seconds, number>,
          "endTime": <end time in seconds, number>,
          "title": "segment title",
          "aiSummary": "150-200 word summary of this segment"
        }}
      ]
    }}

    Requirements:
    1. Every segment has one clear topical focus.
    2. Time ranges are sensible and do not overlap.
    3. Each summary accurately reflects its time range.
    4. Write titles and summaries in {language}, concise and clear.
    """
