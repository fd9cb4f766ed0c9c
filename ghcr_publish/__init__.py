"""
Script: ghcr_publish package
What: Builds a container image, clears any old package version holding the same tag, and pushes to ghcr.io.
Doing: Groups the CLI entrypoint, the per-step modules, and shared helper code in one importable package.
Why: Keeps the publish step readable and testable instead of one long workflow script.
Goal: Provide a clear, maintainable home for the image build and publish logic.
"""
