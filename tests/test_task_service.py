import unittest

from fakes import InMemoryDatabase
from tasks_web.services.task_service import TaskNotFoundError, TaskService, TaskServiceError


class TaskServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDatabase()
        self.tasks = TaskService(self.db)

    def test_create_and_list(self):
        first = self.tasks.create_task(title="  Buy milk ", description="2 liters")
        second = self.tasks.create_task(title="Call Sam")

        rows = self.tasks.list_tasks()
        self.assertEqual([row["id"] for row in rows], [first, second])
        self.assertEqual(rows[0]["title"], "Buy milk")
        self.assertEqual(rows[0]["description"], "2 liters")
        self.assertFalse(rows[0]["completed"])

    def test_list_empty_database(self):
        self.assertEqual(self.tasks.list_tasks(), [])

    def test_blank_title_rejected(self):
        with self.assertRaises(TaskServiceError):
            self.tasks.create_task(title="   ")

    def test_hides_completed_on_request(self):
        done = self.tasks.create_task(title="Done")
        todo = self.tasks.create_task(title="Todo")
        self.tasks.set_task_completed(done, True)

        self.assertEqual([row["id"] for row in self.tasks.list_tasks(include_completed=False)], [todo])
        self.assertEqual(len(self.tasks.list_tasks()), 2)

    def test_rename(self):
        task_id = self.tasks.create_task(title="Draft")
        self.tasks.rename_task(task_id, "Final")
        self.assertEqual(self.tasks.get_task(task_id)["title"], "Final")

    def test_delete(self):
        task_id = self.tasks.create_task(title="Temporary")
        self.tasks.delete_task(task_id)
        with self.assertRaises(TaskNotFoundError):
            self.tasks.get_task(task_id)

    def test_missing_task(self):
        with self.assertRaises(TaskNotFoundError):
            self.tasks.set_task_completed("-nope", True)
        with self.assertRaises(TaskServiceError):
            self.tasks.get_task("a/b")


if __name__ == "__main__":
    unittest.main()
