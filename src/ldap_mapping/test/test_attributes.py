import unittest

from ldap_mapping.attributes import decode_value, flatten_values, mangle, \
	nest_subtypes, normalize_values, parse_entry, plain_values, \
	split_attribute_name
from ldap_mapping.ldap_stubber import CORE_SCHEMA
from ldap_mapping.schema import Schema

class NormalizingValues(unittest.TestCase):
	def test_should_return_an_empty_list_for_none(self):
		self.assertEqual(normalize_values(None), [])

	def test_should_wrap_single_values(self):
		self.assertEqual(normalize_values('wad'), [ 'wad' ])

	def test_should_convert_numbers_and_booleans(self):
		self.assertEqual(
			normalize_values((1, None, 2.5, False)),
			[ '1', '2.5', 'FALSE' ]
		)

	def test_should_normalize_subtypes(self):
		self.assertEqual(
			normalize_values([ 'wad', { 'lang-en': 'Will' } ]),
			[ 'wad', { 'lang-en': [ 'Will' ] } ]
		)

	def test_should_wrap_bytes_of_binary_required_attributes(self):
		self.assertEqual(
			normalize_values(b'\x30\x82', binary_required=True),
			[ { 'binary': [ b'\x30\x82' ] } ]
		)

	def test_should_reject_other_types(self):
		self.assertRaises(TypeError, normalize_values, [ object() ])


class FlatteningValues(unittest.TestCase):
	def test_should_append_the_options_to_the_name(self):
		self.assertEqual(
			flatten_values('cn', [ 'wad', { 'lang-en': [ 'wad', 'Will' ] } ]),
			{ 'cn': [ b'wad' ], 'cn;lang-en': [ b'wad', b'Will' ] }
		)

	def test_should_flatten_nested_options(self):
		self.assertEqual(
			flatten_values('cn', [ { 'lang-ja': [ { 'binary': [ b'x' ] } ] } ]),
			{ 'cn;lang-ja;binary': [ b'x' ] }
		)

	def test_should_encode_text_as_utf8(self):
		self.assertEqual(
			flatten_values('sn', [ 'M\xfcller' ]),
			{ 'sn': [ b'M\xc3\xbcller' ] }
		)


class ParsingEntries(unittest.TestCase):
	def setUp(self):
		self.schema = Schema(CORE_SCHEMA)

	def test_should_use_the_canonical_names(self):
		self.assertEqual(
			parse_entry({ 'commonName': [ b'Bob' ] }, self.schema),
			{ 'cn': [ 'Bob' ] }
		)

	def test_should_nest_the_options(self):
		self.assertEqual(
			parse_entry({
				'cn': [ b'Bob' ],
				'cn;lang-en': [ b'Robert' ],
			}, self.schema),
			{ 'cn': [ 'Bob', { 'lang-en': [ 'Robert' ] } ] }
		)

	def test_should_keep_binary_values(self):
		self.assertEqual(
			parse_entry({
				'jpegPhoto': [ b'\xff\xd8' ],
				'userCertificate;binary': [ b'0\x82' ],
			}, self.schema),
			{
				'jpegPhoto': [ b'\xff\xd8' ],
				'userCertificate': [ { 'binary': [ b'0\x82' ] } ],
			}
		)

	def test_should_decode_without_schema(self):
		self.assertEqual(
			parse_entry({ 'attribute1': [ b'someval1' ] }, Schema()),
			{ 'attribute1': [ 'someval1' ] }
		)


class Helpers(unittest.TestCase):
	def test_should_mangle_names(self):
		self.assertEqual(mangle('x-custom-attr'), 'x_custom_attr')

	def test_should_split_attribute_names(self):
		self.assertEqual(
			split_attribute_name('cn;lang-ja;binary'),
			('cn', [ 'lang-ja', 'binary' ])
		)
		self.assertEqual(split_attribute_name('cn'), ('cn', []))

	def test_should_extend_existing_subtypes(self):
		target = [ 'wad', { 'lang-ja': [ 'a' ] } ]
		nest_subtypes([ 'lang-ja' ], [ 'b' ], target)
		self.assertEqual(target, [ 'wad', { 'lang-ja': [ 'a', 'b' ] } ])

	def test_should_keep_invalid_utf8_as_bytes(self):
		self.assertEqual(decode_value(b'\xff'), b'\xff')
		self.assertEqual(decode_value(b'abc'), 'abc')
		self.assertEqual(decode_value(b'abc', binary=True), b'abc')

	def test_should_drop_subtypes_from_plain_values(self):
		self.assertEqual(
			plain_values([ 'wad', { 'lang-en': [ 'Will' ] } ]),
			[ 'wad' ]
		)
