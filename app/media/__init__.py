"""
Media app for album images and videos.

This app provides:
- Album, MediaAsset and CleanupJob models
- Upload orchestration: quota, moderation, blob upload, catalog write
- Atomic publishing of album metadata diffs
- A durable cleanup queue for orphaned blobs, drained by Celery beat
"""
