"""
batch_process.services -- The process engine and its unit-of-work seam.

Import from the submodules directly (``batch_process.services.process``,
``batch_process.services.unit_of_work``).
"""
