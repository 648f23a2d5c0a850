import os
import runpy
import sys
from pathlib import Path
from unittest import mock

from django.apps import apps
from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, TestCase

import resumable

SETTINGS_PATH = str(Path(resumable.__file__).resolve().parent / "settings.py")


class CoreAppTests(TestCase):
    def test_ready_creates_no_users(self):
        env = {"SUPERUSER_USERNAME": "ops", "SUPERUSER_PASSWORD": "secret"}
        with mock.patch.dict(os.environ, env):
            apps.get_app_config("core").ready()
        self.assertFalse(get_user_model().objects.exists())


class CelerySettingsTests(SimpleTestCase):
    def _load_settings(self, *, testing):
        env = {"CELERY_TASK_ALWAYS_EAGER": "true"}
        argv = ["manage.py", "test"] if testing else ["manage.py", "runserver"]
        with mock.patch.dict(os.environ, env), mock.patch.dict(sys.modules), mock.patch.object(sys, "argv", argv):
            if not testing:
                sys.modules.pop("pytest", None)
            return runpy.run_path(SETTINGS_PATH)

    def test_eager_tasks_allowed_in_tests(self):
        loaded = self._load_settings(testing=True)
        self.assertTrue(loaded["CELERY_TASK_ALWAYS_EAGER"])

    def test_eager_tasks_refused_outside_tests(self):
        with self.assertRaises(ImproperlyConfigured):
            self._load_settings(testing=False)
