"""Tests for the CLI command parser."""

import pytest

from cli.models import ListCommand, RetryCommand, StatusCommand, UploadCommand
from cli.parser import ParseError, parse_command


def test_parse_upload_multiple_files():
    cmd = parse_command('upload a.txt "my video.mp4"')

    assert cmd == UploadCommand(file_list=('a.txt', 'my video.mp4'))


def test_parse_upload_requires_file():
    with pytest.raises(ParseError, match='at least one file'):
        parse_command('upload')


def test_parse_retry_and_list():
    assert parse_command('retry') == RetryCommand()
    assert parse_command('list') == ListCommand()


def test_parse_no_arg_commands_reject_arguments():
    with pytest.raises(ParseError, match='retry takes no arguments'):
        parse_command('retry now')


def test_parse_status():
    assert parse_command('status big.iso') == StatusCommand(path='big.iso')

    with pytest.raises(ParseError):
        parse_command('status a b')


@pytest.mark.parametrize('line', ['', '   '])
def test_parse_empty(line):
    with pytest.raises(ParseError, match='Empty command'):
        parse_command(line)


def test_parse_unknown_command():
    with pytest.raises(ParseError, match='Unknown command: download'):
        parse_command('download x')


def test_parse_unbalanced_quotes():
    with pytest.raises(ParseError, match='Invalid syntax'):
        parse_command('upload "unterminated')
