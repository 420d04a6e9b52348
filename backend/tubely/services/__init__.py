"""
Services module for the Tubely backend.

The video ingestion and delivery pipeline, leaves first:

- temp_stage: Per-request temporary directory and stream materialization
- media_probe: ffprobe wrapper reading stream geometry
- classifier: Landscape / portrait / other classification
- remuxer: ffmpeg fast-start remuxing
- storage_placer: Upload of processed files to S3 under classification keys
- link_signer: Presigned 10-minute playback URLs
- metadata_store: MongoDB persistence of video records
- upload_service: Orchestration of the above for video and thumbnail uploads
"""
