"""Rollout ROI projection engine and portfolio rescaling."""
