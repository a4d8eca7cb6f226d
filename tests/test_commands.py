import hashlib
import io
import os
import tempfile
import unittest
from unittest import mock

import brotli
from rich.console import Console

from fmcli import operations
from fmcli.commands import CommandHandler, split_command_line
from fmcli.config import Config
from fmcli.result import CommandResult, Outcome
from fmcli.session import Session

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class HandlerTestCase(unittest.TestCase):
    """Runs a CommandHandler against a temporary home directory"""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.home = os.path.realpath(self._tmp.name)
        self.handler = self.create_handler(self.home)

    def tearDown(self):
        self._tmp.cleanup()

    def create_handler(self, start_directory):
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.raw = io.BytesIO()
        session = Session("Tester", start_directory, home_directory=self.home)
        return CommandHandler(
            session,
            Config(),
            console=Console(file=self.out, width=200, color_system=None),
            err_console=Console(file=self.err, width=200, color_system=None),
            stdout=self.raw,
        )

    def run_cmd(self, line):
        return self.handler.dispatch(line)

    @property
    def cwd(self):
        return self.handler.session.current_directory

    def path(self, *parts):
        return os.path.join(self.home, *parts)

    def write(self, name, data):
        with open(self.path(name), "wb") as f:
            f.write(data)
        return self.path(name)

    def read(self, name):
        with open(self.path(name), "rb") as f:
            return f.read()


class TestDispatch(HandlerTestCase):
    def test_unknown_command(self):
        self.assertEqual(self.run_cmd("frobnicate x"), CommandResult.invalid())

    def test_blank_line_is_ignored(self):
        self.assertIsNone(self.run_cmd("   "))

    def test_missing_arguments_are_invalid_and_keep_cwd(self):
        required = {
            "cd": 1, "cat": 1, "add": 1, "rn": 2, "cp": 2, "mv": 2, "rm": 1,
            "os": 1, "hash": 1, "compress": 2, "decompress": 2,
        }
        self.write("a.txt", b"a")
        for cmd, count in required.items():
            for given in range(count):
                line = " ".join([cmd] + ["a.txt"] * given)
                before = self.cwd
                result = self.run_cmd(line)
                self.assertEqual(result.outcome, Outcome.INVALID_INPUT, line)
                self.assertEqual(self.cwd, before, line)

    def test_extra_arguments_ignored(self):
        self.assertEqual(self.run_cmd("add new.txt extra"), CommandResult.ok())
        self.assertTrue(os.path.exists(self.path("new.txt")))

    def test_quoted_arguments(self):
        self.assertEqual(self.run_cmd('add "with space.txt"'), CommandResult.ok())
        self.assertTrue(os.path.exists(self.path("with space.txt")))

    def test_split_falls_back_on_unbalanced_quote(self):
        self.assertEqual(split_command_line('cat "oops'), ["cat", '"oops'])

    def test_execute_reports_error_and_redisplays_cwd(self):
        self.assertTrue(self.handler.execute("cat missing.txt"))
        self.assertEqual(self.err.getvalue().strip(), "Operation failed")
        self.assertIn(f"You are currently in {self.home}", self.out.getvalue())

    def test_execute_invalid_input_message(self):
        self.assertTrue(self.handler.execute("nope"))
        self.assertEqual(self.err.getvalue().strip(), "Invalid input")

    def test_unexpected_exception_is_operation_failed(self):
        with mock.patch("fmcli.operations.remove_file", side_effect=RuntimeError("boom")):
            self.assertEqual(self.run_cmd("rm x"), CommandResult.failed())

    def test_exit(self):
        result = self.run_cmd(".exit")
        self.assertEqual(result.outcome, Outcome.EXIT)
        self.assertIn("Thank you for using File Manager, Tester, goodbye!",
                      self.out.getvalue())
        self.assertFalse(self.handler.execute(".exit"))

    def test_help_lists_commands(self):
        self.assertEqual(self.run_cmd("help"), CommandResult.ok())
        output = self.out.getvalue()
        for cmd in ("up", "cd", "ls", "compress", ".exit"):
            self.assertIn(cmd, output)
        self.assertIn("Brotli-compress a file", output)
        self.assertIn("rn <file> <new_name>", output)


class TestNavigation(HandlerTestCase):
    def test_up_at_root_is_noop(self):
        self.handler = self.create_handler(os.path.abspath(os.sep))
        before = self.cwd
        self.assertEqual(self.run_cmd("up"), CommandResult.ok())
        self.assertEqual(self.cwd, before)

    def test_up_moves_to_parent(self):
        os.mkdir(self.path("sub"))
        self.handler = self.create_handler(self.path("sub"))
        self.run_cmd("up")
        self.assertEqual(self.cwd, self.home)
        self.run_cmd("up")
        self.assertEqual(self.cwd, os.path.dirname(self.home))

    def test_cd_into_subdirectory_and_back(self):
        os.makedirs(self.path("a", "b"))
        self.assertEqual(self.run_cmd("cd a/b"), CommandResult.ok())
        self.assertEqual(self.cwd, self.path("a", "b"))
        self.assertEqual(self.run_cmd("cd ../.."), CommandResult.ok())
        self.assertEqual(self.cwd, self.home)

    def test_cd_outside_home_rejected(self):
        self.assertEqual(self.run_cmd("cd .."), CommandResult.invalid())
        self.assertEqual(self.cwd, self.home)

    def test_cd_to_root_allowed(self):
        root = os.path.abspath(os.sep)
        self.assertEqual(self.run_cmd(f"cd {root}"), CommandResult.ok())
        self.assertEqual(self.cwd, root)

    def test_cd_to_file_or_missing_rejected(self):
        self.write("f.txt", b"")
        self.assertEqual(self.run_cmd("cd f.txt"), CommandResult.invalid())
        self.assertEqual(self.run_cmd("cd missing"), CommandResult.invalid())
        self.assertEqual(self.cwd, self.home)

    def test_ls_directories_first_then_files(self):
        self.write("b.txt", b"")
        self.write("z.txt", b"")
        os.mkdir(self.path("A"))
        self.assertEqual(self.run_cmd("ls"), CommandResult.ok())
        output = self.out.getvalue()
        positions = [output.index(name) for name in ("A", "b.txt", "z.txt")]
        self.assertEqual(positions, sorted(positions))
        self.assertIn("directory", output)
        self.assertIn("file", output)

    def test_ls_symlinked_directory_sorts_with_directories(self):
        self.write("a.txt", b"")
        os.mkdir(self.path("real"))
        os.symlink(self.path("real"), self.path("zlink"))
        entries = operations.list_directory(self.home)
        self.assertEqual(entries, [("real", "directory"), ("zlink", "symlink"), ("a.txt", "file")])

    def test_ls_case_insensitive_order(self):
        for name in ("beta.txt", "Alpha.txt", "gamma.txt"):
            self.write(name, b"")
        os.mkdir(self.path("zdir"))
        self.run_cmd("ls")
        output = self.out.getvalue()
        positions = [output.index(n) for n in ("zdir", "Alpha.txt", "beta.txt", "gamma.txt")]
        self.assertEqual(positions, sorted(positions))


class TestFileCommands(HandlerTestCase):
    def test_cat_streams_file(self):
        self.write("hello.txt", b"hello\nworld")
        self.assertEqual(self.run_cmd("cat hello.txt"), CommandResult.ok())
        self.assertEqual(self.raw.getvalue(), b"hello\nworld\n")

    def test_cat_keeps_existing_trailing_newline(self):
        self.write("hello.txt", b"hello\n")
        self.run_cmd("cat hello.txt")
        self.assertEqual(self.raw.getvalue(), b"hello\n")

    def test_cat_directory_fails(self):
        os.mkdir(self.path("d"))
        self.assertEqual(self.run_cmd("cat d"), CommandResult.failed())

    def test_add_creates_empty_file(self):
        self.assertEqual(self.run_cmd("add new.txt"), CommandResult.ok())
        self.assertEqual(self.read("new.txt"), b"")

    def test_add_existing_file_fails_and_keeps_content(self):
        self.write("keep.txt", b"precious")
        self.assertEqual(self.run_cmd("add keep.txt"), CommandResult.failed())
        self.assertEqual(self.read("keep.txt"), b"precious")

    def test_rn_renames_within_parent(self):
        os.mkdir(self.path("sub"))
        with open(self.path("sub", "old.txt"), "wb") as f:
            f.write(b"data")
        self.assertEqual(self.run_cmd("rn sub/old.txt new.txt"), CommandResult.ok())
        self.assertFalse(os.path.exists(self.path("sub", "old.txt")))
        with open(self.path("sub", "new.txt"), "rb") as f:
            self.assertEqual(f.read(), b"data")
        self.assertFalse(os.path.exists(self.path("new.txt")))

    def test_rn_refuses_to_overwrite(self):
        self.write("a.txt", b"a")
        self.write("b.txt", b"b")
        self.assertEqual(self.run_cmd("rn a.txt b.txt"), CommandResult.failed())
        self.assertEqual(self.read("b.txt"), b"b")
        self.assertEqual(self.read("a.txt"), b"a")

    def test_rn_rejects_absolute_new_name(self):
        self.write("a.txt", b"a")
        with tempfile.TemporaryDirectory() as other:
            target = os.path.join(other, "escaped.txt")
            self.assertEqual(self.run_cmd(f"rn a.txt {target}"), CommandResult.invalid())
            self.assertFalse(os.path.exists(target))
        self.assertEqual(self.read("a.txt"), b"a")

    def test_rn_rejects_names_leaving_the_parent(self):
        os.mkdir(self.path("sub"))
        with open(self.path("sub", "a.txt"), "wb") as f:
            f.write(b"a")
        for new_name in ("../b.txt", "nested/b.txt", "..", "."):
            self.assertEqual(self.run_cmd(f"rn sub/a.txt {new_name}"), CommandResult.invalid())
        self.assertFalse(os.path.exists(self.path("b.txt")))
        self.assertTrue(os.path.exists(self.path("sub", "a.txt")))

    def test_cp_to_device_succeeds(self):
        self.write("a.txt", b"data")
        self.assertEqual(self.run_cmd(f"cp a.txt {os.devnull}"), CommandResult.ok())

    def test_cp_preserves_content_and_hash(self):
        data = os.urandom(200_000)
        self.write("src.bin", data)
        self.assertEqual(self.run_cmd("cp src.bin dst.bin"), CommandResult.ok())
        self.assertEqual(self.read("src.bin"), data)
        self.assertEqual(self.read("dst.bin"), data)

        self.run_cmd("hash src.bin")
        self.run_cmd("hash dst.bin")
        digests = [line for line in self.out.getvalue().splitlines() if line]
        self.assertEqual(digests[0], digests[1])
        self.assertEqual(digests[0], hashlib.sha256(data).hexdigest())

    def test_cp_truncates_existing_destination(self):
        self.write("src.txt", b"short")
        self.write("dst.txt", b"a much longer previous content")
        self.run_cmd("cp src.txt dst.txt")
        self.assertEqual(self.read("dst.txt"), b"short")

    def test_cp_onto_itself_fails_without_data_loss(self):
        self.write("same.txt", b"content")
        self.assertEqual(self.run_cmd("cp same.txt ./same.txt"), CommandResult.failed())
        self.assertEqual(self.read("same.txt"), b"content")

    def test_cp_missing_source_fails(self):
        self.assertEqual(self.run_cmd("cp nope.txt dst.txt"), CommandResult.failed())
        self.assertFalse(os.path.exists(self.path("dst.txt")))

    def test_mv_moves_content_and_removes_source(self):
        self.write("src.txt", b"moving")
        self.assertEqual(self.run_cmd("mv src.txt dst.txt"), CommandResult.ok())
        self.assertFalse(os.path.exists(self.path("src.txt")))
        self.assertEqual(self.read("dst.txt"), b"moving")

    def test_mv_keeps_source_when_copy_fails(self):
        self.write("src.txt", b"stay")
        result = self.run_cmd("mv src.txt missing_dir/dst.txt")
        self.assertEqual(result, CommandResult.failed())
        self.assertEqual(self.read("src.txt"), b"stay")

    def test_mv_reports_failure_when_delete_fails(self):
        self.write("src.txt", b"copied")
        with mock.patch("fmcli.operations.os.remove", side_effect=PermissionError(13, "denied")):
            result = self.run_cmd("mv src.txt dst.txt")
        self.assertEqual(result, CommandResult.failed())
        self.assertEqual(self.read("dst.txt"), b"copied")
        self.assertTrue(os.path.exists(self.path("src.txt")))

    def test_rm(self):
        self.write("gone.txt", b"")
        self.assertEqual(self.run_cmd("rm gone.txt"), CommandResult.ok())
        self.assertFalse(os.path.exists(self.path("gone.txt")))
        self.assertEqual(self.run_cmd("rm gone.txt"), CommandResult.failed())


class TestHashAndCompression(HandlerTestCase):
    def test_hash_of_empty_file(self):
        self.write("empty", b"")
        self.assertEqual(self.run_cmd("hash empty"), CommandResult.ok())
        self.assertEqual(self.out.getvalue().strip(), EMPTY_SHA256)

    def test_hash_missing_file(self):
        self.assertEqual(self.run_cmd("hash missing"), CommandResult.failed())

    def test_compress_decompress_round_trip(self):
        data = b"".join(f"line {i}\n".encode() for i in range(20000))
        self.write("orig.txt", data)
        self.assertEqual(self.run_cmd("compress orig.txt orig.txt.br"), CommandResult.ok())
        packed = self.read("orig.txt.br")
        self.assertLess(len(packed), len(data))
        self.assertEqual(brotli.decompress(packed), data)

        self.assertEqual(self.run_cmd("decompress orig.txt.br back.txt"), CommandResult.ok())
        self.assertEqual(self.read("back.txt"), data)

    def test_round_trip_empty_file(self):
        self.write("empty", b"")
        self.run_cmd("compress empty empty.br")
        self.assertEqual(self.run_cmd("decompress empty.br out"), CommandResult.ok())
        self.assertEqual(self.read("out"), b"")

    def test_decompress_malformed_input_fails(self):
        self.write("bad.br", b"definitely not a brotli stream" * 10)
        self.assertEqual(self.run_cmd("decompress bad.br out.txt"), CommandResult.failed())

    def test_decompress_empty_input_fails(self):
        self.write("empty.br", b"")
        self.assertEqual(self.run_cmd("decompress empty.br out.txt"), CommandResult.failed())


class TestOsCommand(HandlerTestCase):
    def test_eol(self):
        self.assertEqual(self.run_cmd("os --EOL"), CommandResult.ok())
        self.assertEqual(self.out.getvalue().strip(), '"%s"' % os.linesep.encode(
            "unicode_escape").decode())

    def test_architecture(self):
        with mock.patch("fmcli.osinfo.platform.machine", return_value="x86_64"):
            self.run_cmd("os --architecture")
        self.assertEqual(self.out.getvalue().strip(), "x86_64")

    def test_homedir_and_username(self):
        with mock.patch("fmcli.osinfo.getpass.getuser", return_value="alice"):
            self.run_cmd("os --username")
        self.assertIn("alice", self.out.getvalue())
        self.run_cmd("os --homedir")
        self.assertIn(os.path.expanduser("~"), self.out.getvalue())

    def test_cpus_table(self):
        with mock.patch("fmcli.osinfo.cpus", return_value=[("Test CPU", "3.20 GHz")] * 2):
            self.assertEqual(self.run_cmd("os --cpus"), CommandResult.ok())
        output = self.out.getvalue()
        self.assertIn("model", output)
        self.assertIn("speed", output)
        self.assertEqual(output.count("Test CPU"), 2)
        self.assertIn("3.20 GHz", output)

    def test_unknown_flag(self):
        self.assertEqual(self.run_cmd("os --kernel"), CommandResult.invalid())


class TestSequencing(HandlerTestCase):
    def test_output_of_each_command_precedes_the_next(self):
        self.write("a.txt", b"")
        self.handler.execute("hash a.txt")
        self.handler.execute("ls")
        output = self.out.getvalue()
        digest_at = output.index(EMPTY_SHA256)
        first_prompt = output.index("You are currently in", digest_at)
        listing_at = output.index("a.txt", first_prompt)
        second_prompt = output.index("You are currently in", listing_at)
        self.assertLess(digest_at, first_prompt)
        self.assertLess(first_prompt, listing_at)
        self.assertLess(listing_at, second_prompt)


if __name__ == '__main__':
    unittest.main()
