import math
import os
import tempfile

import pytest

from protoc_expand.errors import LoadFailure
from protoc_expand.models import ProtoEnum, ProtoMessage, ProtoNamespace, ProtoService
from protoc_expand.parser.proto_ast_parser import ProtoParseError
from protoc_expand.parser.proto_parser import load_proto_files, parse_proto_file, parse_proto_text
from protoc_expand.parser.proto_tokenizer import ProtoTokenType, tokenize_proto, unescape_string


def _write_temp_proto(content: str) -> str:
    fd, path = tempfile.mkstemp(suffix=".proto")
    os.write(fd, content.encode())
    os.close(fd)
    return path


class TestSimpleMessage:
    def test_single_message_with_primitives(self):
        proto = """\
syntax = "proto3";

message OrderInfo {
    int32 order_id = 1;
    string customer_name = 2;
    bool is_active = 3;
}
"""
        path = _write_temp_proto(proto)
        try:
            parsed = parse_proto_file(path)
            assert parsed.file_path == path
            assert parsed.syntax == "proto3"
            assert len(parsed.messages) == 1
            msg = parsed.messages[0]
            assert msg.name == "OrderInfo"
            assert [(f.name, f.number, f.type_name) for f in msg.fields] == [
                ("order_id", 1, "int32"),
                ("customer_name", 2, "string"),
                ("is_active", 3, "bool"),
            ]
            assert msg.fields[0].is_repeated is False
        finally:
            os.unlink(path)

    def test_declaration_order_is_kept(self):
        parsed = parse_proto_text("""\
syntax = "proto3";
enum Kind { KIND_UNKNOWN = 0; }
message Foo { int32 id = 1; }
service Api { rpc Get(Foo) returns (Foo); }
message Bar { string name = 1; }
""")
        kinds = [type(n) for n in parsed.root.nested]
        assert kinds == [ProtoEnum, ProtoMessage, ProtoService, ProtoMessage]
        assert [m.name for m in parsed.messages] == ["Foo", "Bar"]

    def test_keywords_as_field_names(self):
        parsed = parse_proto_text("""\
message Pkg {
    string package = 1;
    string service = 2;
    bool option = 3;
}
""")
        assert [f.name for f in parsed.messages[0].fields] == ["package", "service", "option"]


class TestPackages:
    def test_package_creates_nested_namespaces(self):
        parsed = parse_proto_text("""\
syntax = "proto3";
package acme.shop.v1;
message Order { int32 id = 1; }
""")
        assert parsed.package == "acme.shop.v1"
        acme = parsed.root.nested[0]
        assert isinstance(acme, ProtoNamespace)
        assert acme.name == "acme"
        shop = acme.namespaces[0]
        v1 = shop.namespaces[0]
        assert v1.name == "v1"
        assert v1.messages[0].name == "Order"
        assert parsed.messages[0] is v1.messages[0]

    def test_imports_and_file_options(self):
        parsed = parse_proto_text("""\
syntax = "proto3";
import "google/protobuf/timestamp.proto";
import public "common.proto";
option java_package = "com.acme";
option optimize_for = SPEED;
""")
        assert parsed.imports == ["google/protobuf/timestamp.proto", "common.proto"]
        assert [(o.name, o.value) for o in parsed.options] == [
            ("java_package", "com.acme"),
            ("optimize_for", "SPEED"),
        ]


class TestFields:
    def test_repeated_and_labels(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
message Container {
    repeated string tags = 1;
    optional int32 score = 2;
    required .acme.Item item = 3;
}
""")
        fields = parsed.messages[0].fields
        assert fields[0].is_repeated is True
        assert fields[0].label == "repeated"
        assert fields[1].is_repeated is False
        assert fields[1].label == "optional"
        assert fields[2].label == "required"
        assert fields[2].type_name == ".acme.Item"

    def test_map_field(self):
        parsed = parse_proto_text("""\
message Counts {
    map<string, int64> by_name = 1;
}
""")
        f = parsed.messages[0].fields[0]
        assert f.type_name == "map<string, int64>"
        assert f.name == "by_name"
        assert f.is_repeated is False

    def test_field_options(self):
        parsed = parse_proto_text("""\
message Opts {
    int32 old = 1 [deprecated = true, json_name = "legacy"];
    string email = 2 [(validate.rules).string.min_len = 3];
}
""")
        old, email = parsed.messages[0].fields
        assert [(o.name, o.value) for o in old.options] == [("deprecated", True), ("json_name", "legacy")]
        assert email.options[0].name == "(validate.rules).string.min_len"
        assert email.options[0].value == 3

    def test_oneof_fields_join_message_fields(self):
        parsed = parse_proto_text("""\
message Payment {
    string id = 1;
    oneof method {
        string card = 2;
        string iban = 3;
    }
    int64 amount = 4;
}
""")
        fields = parsed.messages[0].fields
        assert [f.name for f in fields] == ["id", "card", "iban", "amount"]
        assert [f.oneof for f in fields] == [None, "method", "method", None]

    def test_reserved_and_extensions_are_skipped(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
message Legacy {
    reserved 2, 15, 9 to 11;
    reserved "foo", "bar";
    extensions 100 to 199;
    optional int32 kept = 1;
}
""")
        assert [f.name for f in parsed.messages[0].fields] == ["kept"]

    def test_extend_block(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
extend google.protobuf.MessageOptions {
    repeated string mixins = 50001;
}
""")
        ext = parsed.extensions[0]
        assert ext.name == "mixins"
        assert ext.number == 50001
        assert ext.extendee == "google.protobuf.MessageOptions"


class TestMessageOptions:
    def test_repeated_option_occurrences_are_all_kept(self):
        parsed = parse_proto_text("""\
message Host {
    option (ts_proto_options.mixins) = "A";
    option (ts_proto_options.mixins) = "B";
    option deprecated = true;
    int32 id = 1;
}
""")
        opts = parsed.messages[0].options
        assert [(o.name, o.value) for o in opts] == [
            ("(ts_proto_options.mixins)", "A"),
            ("(ts_proto_options.mixins)", "B"),
            ("deprecated", True),
        ]

    def test_aggregate_option_value(self):
        parsed = parse_proto_text("""\
message Host {
    option (my.opt) = { name: "x" count: 2 };
}
""")
        value = parsed.messages[0].options[0].value
        assert value.startswith("{")
        assert '"x"' in value


class TestNestedTypes:
    def test_nested_message_and_enum(self):
        parsed = parse_proto_text("""\
syntax = "proto3";

message Outer {
    string name = 1;
    message Inner {
        int32 value = 1;
        message Deepest { bool flag = 1; }
    }
    enum Status {
        STATUS_UNKNOWN = 0;
        STATUS_OK = 1;
        STATUS_NEG = -1;
    }
    Inner detail = 2;
}
""")
        outer = parsed.messages[0]
        assert [f.name for f in outer.fields] == ["name", "detail"]
        assert outer.nested_messages[0].name == "Inner"
        assert outer.nested_messages[0].nested_messages[0].name == "Deepest"
        status = outer.enums[0]
        assert [(v.name, v.number) for v in status.values] == [
            ("STATUS_UNKNOWN", 0),
            ("STATUS_OK", 1),
            ("STATUS_NEG", -1),
        ]


class TestServices:
    def test_rpcs(self):
        parsed = parse_proto_text("""\
syntax = "proto3";
service Orders {
    option deprecated = true;
    rpc Get(GetRequest) returns (Order);
    rpc Watch(stream WatchRequest) returns (stream Order) {
        option idempotency_level = NO_SIDE_EFFECTS;
    }
}
""")
        svc = parsed.services[0]
        assert svc.name == "Orders"
        get, watch = svc.rpcs
        assert (get.input_type, get.output_type) == ("GetRequest", "Order")
        assert get.client_streaming is False
        assert watch.client_streaming is True
        assert watch.server_streaming is True
        assert watch.options[0].value == "NO_SIDE_EFFECTS"


class TestComments:
    def test_comments_are_ignored(self):
        parsed = parse_proto_text("""\
// leading
message A { // trailing
    /* block
       comment */
    int32 x = 1;
}
""")
        assert parsed.messages[0].fields[0].name == "x"


class TestErrors:
    def test_parse_error_has_position(self):
        with pytest.raises(ProtoParseError, match="Line 2"):
            parse_proto_text("message A {\n    int32 = 1;\n}\n")

    def test_unterminated_message(self):
        with pytest.raises(ProtoParseError):
            parse_proto_text("message A {\n    int32 x = 1;\n")

    def test_file_parse_error_becomes_load_failure(self):
        path = _write_temp_proto("message {")
        try:
            with pytest.raises(LoadFailure) as exc_info:
                parse_proto_file(path)
            assert exc_info.value.path == path
        finally:
            os.unlink(path)

    def test_missing_file(self):
        with pytest.raises(LoadFailure):
            parse_proto_file("/nonexistent/dir/missing.proto")

    def test_load_is_all_or_nothing(self):
        good = _write_temp_proto("message A { int32 x = 1; }")
        try:
            with pytest.raises(LoadFailure):
                load_proto_files([good, "/nonexistent/missing.proto"])
        finally:
            os.unlink(good)


class TestLiterals:
    def test_octal_field_number(self):
        parsed = parse_proto_text("message A { int32 x = 010; int32 y = 0x1F; int32 z = 0; }")
        assert [f.number for f in parsed.messages[0].fields] == [8, 31, 0]

    def test_octal_option_values(self):
        parsed = parse_proto_text("""\
option (foo) = 010;
option (bar) = -012;
option (baz) = 1.5;
option (qux) = 10;
""")
        assert [o.value for o in parsed.options] == [8, -10, 1.5, 10]
        assert isinstance(parsed.options[0].value, int)

    def test_octal_enum_value(self):
        parsed = parse_proto_text("enum E { E_ZERO = 0; E_EIGHT = 010; }")
        assert [v.number for v in parsed.enums[0].values] == [0, 8]

    def test_string_escapes_are_decoded(self):
        parsed = parse_proto_text("""\
option (hex) = "\\x42";
option (oct) = "\\101\\0";
option (quote) = "say \\"hi\\"";
option (single) = 'it\\'s';
option (newline) = "a\\nb\\tc";
option (uni) = "\\u00e9";
""")
        assert [o.value for o in parsed.options] == ["B", "A\x00", 'say "hi"', "it's", "a\nb\tc", "é"]

    def test_signed_float_specials(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
message F {
    optional double lo = 1 [default = -inf];
    optional double hi = 2 [default = inf];
    optional double odd = 3 [default = -nan];
    optional double neg = 4 [default = -1.25];
}
""")
        values = [f.options[0].value for f in parsed.messages[0].fields]
        assert values[0] == float("-inf")
        assert values[1] == float("inf")
        assert math.isnan(values[2])
        assert values[3] == -1.25

    def test_signed_identifier_is_not_a_float_special(self):
        tokens = tokenize_proto("-info")
        assert [t.value for t in tokens if t.type == ProtoTokenType.IDENT] == ["info"]

    def test_multiline_string_keeps_line_numbers(self):
        text = 'option (a) = "one\ntwo";\nmessage {\n'
        tokens = tokenize_proto(text)
        assert tokens[5].type == ProtoTokenType.STRING_LIT
        assert tokens[5].line == 1
        message_tok = next(t for t in tokens if t.type == ProtoTokenType.MESSAGE)
        assert message_tok.line == 3
        with pytest.raises(ProtoParseError, match="Line 3"):
            parse_proto_text(text)


class TestUnescape:
    def test_plain_text_unchanged(self):
        assert unescape_string("plain") == "plain"

    def test_escapes(self):
        assert unescape_string("\\x41\\x4a") == "AJ"
        assert unescape_string("\\1010") == "A0"
        assert unescape_string("\\\\") == "\\"
        assert unescape_string("\\U0001F600") == "\U0001F600"

    def test_unknown_escape_keeps_character(self):
        assert unescape_string("\\q") == "q"


class TestGroups:
    def test_group_becomes_nested_message_and_field(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
message SearchResponse {
    repeated group Result = 1 {
        required string url = 2;
        optional string title = 3;
    }
    optional int32 total = 4;
}
""")
        msg = parsed.messages[0]
        assert [(f.name, f.number, f.type_name, f.is_repeated) for f in msg.fields] == [
            ("result", 1, "Result", True),
            ("total", 4, "int32", False),
        ]
        result = msg.nested_messages[0]
        assert result.name == "Result"
        assert [f.name for f in result.fields] == ["url", "title"]

    def test_group_in_oneof(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
message Choice {
    oneof pick {
        group Left = 1 { optional int32 v = 2; }
    }
}
""")
        msg = parsed.messages[0]
        assert msg.fields[0].oneof == "pick"
        assert msg.fields[0].label is None
        assert msg.nested_messages[0].name == "Left"

    def test_group_in_extend(self):
        parsed = parse_proto_text("""\
syntax = "proto2";
package p;
extend Base {
    optional group Extra = 100 { optional int32 n = 101; }
}
""")
        assert parsed.extensions[0].type_name == "Extra"
        assert parsed.extensions[0].extendee == "Base"
        assert parsed.messages[0].name == "Extra"
