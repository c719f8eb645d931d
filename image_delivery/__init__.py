"""Signed on-demand image transformations streamed from S3."""
