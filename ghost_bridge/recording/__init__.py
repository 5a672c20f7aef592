"""Session recording and recipe replay.

Every command dispatched while a recording is active is captured by the
RecordingInterceptor; stopping the session persists an immutable Recording
through the RecipeStore.  Recipes, the reusable parameterized command
sequences, live in the same store and are replayed by the RecipeRunner.

Import the concrete classes from their modules (``recording.recorder``,
``recording.store``, ``recording.runner``); this package stays import-light
because the protocol result union depends on ``recording.models``.
"""
