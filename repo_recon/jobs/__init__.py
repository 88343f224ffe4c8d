"""Job bodies shared by the Celery tasks and the inline runner.

Each job is an ``async`` function taking a :class:`JobContext`; the Celery
wrappers in ``repo_recon.worker.tasks`` drive them with ``asyncio.run`` and
own the retry policy.
"""
