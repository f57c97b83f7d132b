"""Tests for claudeflow package exports."""


class TestPackageExports:
    def test_import_core_components(self):
        """from claudeflow import the core components works."""
        from claudeflow import (
            ActivityMonitor,
            EventBus,
            HookLogReader,
            PatternClassifier,
            PermissionTracker,
        )

        assert EventBus is not None
        assert PatternClassifier is not None
        assert HookLogReader is not None
        assert PermissionTracker is not None
        assert ActivityMonitor is not None

    def test_all_exports(self):
        """__all__ contains expected exports."""
        import claudeflow

        assert hasattr(claudeflow, "__all__")
        expected = {
            "DEFAULT_RULES",
            "ActivityEvent",
            "ActivityKind",
            "ActivityMonitor",
            "AsyncioScheduler",
            "EventBus",
            "HookLogReader",
            "ManualScheduler",
            "PatternClassifier",
            "PatternRule",
            "PermissionRequest",
            "PermissionTracker",
            "RequestType",
            "Resolution",
            "Scheduler",
            "TextIngestor",
        }
        assert set(claudeflow.__all__) == expected
        for name in expected:
            assert hasattr(claudeflow, name)

    def test_tracker_same_reference(self):
        """Importing from package and module gives same class."""
        from claudeflow import PermissionTracker as FromPkg
        from claudeflow.tracker import PermissionTracker as FromMod

        assert FromPkg is FromMod

    def test_model_same_reference(self):
        from claudeflow import ActivityKind as FromPkg
        from claudeflow.models import ActivityKind as FromMod

        assert FromPkg is FromMod
