"""Deployment orchestration: package, upload, register."""
