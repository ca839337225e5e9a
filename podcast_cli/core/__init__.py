"""
Core download pipeline.

The resolver turns selections into `DownloadIntent`s, the partitioner spreads
them over a bounded worker pool, the `TransferEngine` executes them with
resumable streaming, and the `StateReconciler` folds concurrent subscription
refreshes into a single snapshot.
"""
