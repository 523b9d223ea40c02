from hera.utils.json_parser import parse_json_safely, strip_code_fences


class TestParseJsonSafely:
    def test_plain_json(self):
        assert parse_json_safely('{"a": 1}') == {"a": 1}

    def test_code_fence_is_stripped(self):
        assert strip_code_fences('```json\n[1, 2]\n```') == "[1, 2]"
        assert parse_json_safely('```JSON\n{"a": [1]}\n```') == {"a": [1]}

    def test_prose_around_array(self):
        text = 'Sure! Here is the list:\n[{"name": "A"}]\nHope this helps.'

        assert parse_json_safely(text) == [{"name": "A"}]

    def test_prose_around_object(self):
        assert parse_json_safely('Result: {"restrictions": ["x"]} done') == {"restrictions": ["x"]}

    def test_concatenated_objects_are_merged(self):
        text = '{"restrictions": ["a"], "notes": "first"}\n{"restrictions": ["b"], "notes": "second"}'

        assert parse_json_safely(text) == {"restrictions": ["a", "b"], "notes": "second"}

    def test_concatenated_arrays_are_flattened(self):
        assert parse_json_safely("[1, 2]\n[3]") == [1, 2, 3]

    def test_unparseable_returns_none(self):
        assert parse_json_safely("I cannot help with that.") is None
        assert parse_json_safely("") is None
        assert parse_json_safely(None) is None
