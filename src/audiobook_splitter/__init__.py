"""Audiobook Splitter -- turn audiobook files into tagged per-chapter files.

Core modules:
    config     -- Configuration via pydantic-settings (PIPELINE_LLM_* env vars)
    cli        -- Click CLI entry point. CLI flags passed as kwargs to
                  PipelineConfig (no env pollution).
    runner     -- Per-file orchestration: DRM removal, title resolution, split
    commands   -- Single subprocess choke point; non-zero exit raises
                  ExternalToolError with captured stderr.
    ffprobe    -- Typed parsing of ffprobe format/chapter JSON (ProbeError on
                  missing or mistyped fields).
    chapters   -- Chapter list from millisecond markers, or one whole-file chapter
    segmenter  -- Stream-copy cutting per chapter with title/album tags
    cover_art  -- Best-effort cover extraction and attached_pic muxing
    drm        -- Audible .aax decryption with activation bytes
    ai         -- LLM title disambiguation (bounded retry) and shortening,
                  via the `llm` CLI or any OpenAI-compatible endpoint
    title_cache -- JSON file cache of resolved titles
    ffmpeg     -- Timestamp formatting, ffmpeg argument helpers, audio extraction
    sanitize   -- Filename sanitization and chapter numbering
"""
