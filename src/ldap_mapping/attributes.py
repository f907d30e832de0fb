"""
Helpers for converting attribute values between the form held by the mapped
objects and the form sent to and received from the ldap-library.

The mapped objects hold the values of an attribute as a list. Each item is a
string, bytes, or a dictionary which maps an attribute option ("subtype") to
a list of further values:

	cn = [ 'wad', { 'lang-en': [ 'wad', 'Will' ] } ]

The ldap-library expects the options as part of the attribute name and bytes
as values:

	{ 'cn': [ b'wad' ], 'cn;lang-en': [ b'wad', b'Will' ] }
"""

BINARY_OPTION = 'binary'

def mangle(name):
	"""
	Returns the python identifier for the given attribute name.
	"""
	return name.replace('-', '_')

def encode_value(val):
	"""
	Encodes the given value for LDAP

	val -- the value which should be encoded
	"""
	if isinstance(val, str):
		return val.encode('utf-8')
	if isinstance(val, bool):
		trans_table = { True: b'TRUE', False: b'FALSE' }
		return trans_table[val]
	if isinstance(val, (int, float)):
		return str(val).encode('ascii')
	if isinstance(val, list):
		return [ encode_value(i) for i in val ]
	return val

def decode_value(val, binary=False):
	"""
	Decodes a value received from LDAP. Binary values and values which are no
	valid utf-8 are kept as bytes.
	"""
	if binary or not isinstance(val, bytes):
		return val
	try:
		return val.decode('utf-8')
	except UnicodeDecodeError:
		return val

def normalize_values(value, binary_required=False):
	"""
	Converts a value assigned by the user into the list form.

	value -- a single value, a list of values or a subtype dictionary
	binary_required -- if true bare bytes are wrapped in {'binary': [...]}
	"""
	if value is None:
		return []
	if not isinstance(value, (list, tuple)):
		value = [ value ]
	values = []
	for item in value:
		if item is None:
			continue
		if isinstance(item, dict):
			values.append(dict(
				(key, normalize_values(val)) for key, val in item.items()
			))
			continue
		if isinstance(item, bool):
			item = item and 'TRUE' or 'FALSE'
		elif isinstance(item, (int, float)):
			item = str(item)
		elif not isinstance(item, (str, bytes)):
			raise TypeError("Can't store values of type %s" % type(item))
		if binary_required and isinstance(item, bytes):
			item = { BINARY_OPTION: [ item ] }
		values.append(item)
	return values

def flatten_values(name, values, result=None):
	"""
	Converts the list form of the values of the given attribute into the
	dictionary expected by the ldap-library.
	"""
	if result is None:
		result = {}
	for item in values:
		if isinstance(item, dict):
			for subtype, sub_values in item.items():
				flatten_values('%s;%s' % (name, subtype), sub_values, result)
			continue
		result.setdefault(name, []).append(encode_value(item))
	return result

def split_attribute_name(name):
	"""
	Splits 'cn;lang-en' into ('cn', ['lang-en']).
	"""
	parts = name.split(';')
	return parts[0], [ i for i in parts[1:] if i ]

def nest_subtypes(subtypes, values, target):
	"""
	Appends the values of an attribute with the given subtypes to the target
	list, e.g. (['lang-ja', 'binary'], [b'x']) becomes
	{'lang-ja': [{'binary': [b'x']}]}. Dictionaries already holding the subtype
	are extended.
	"""
	if not subtypes:
		target.extend(values)
		return target
	subtype = subtypes[0]
	for item in target:
		if isinstance(item, dict) and subtype in item:
			nest_subtypes(subtypes[1:], values, item[subtype])
			return target
	target.append({ subtype: nest_subtypes(subtypes[1:], values, []) })
	return target

def parse_entry(attrs, schema):
	"""
	Converts the attributes of a search result into a dictionary which maps
	the canonical attribute names to their values in the list form.

	attrs -- the attribute dictionary of a search result
	schema -- the Schema used to find canonical names and binary attributes
	"""
	data = {}
	for key, values in attrs.items():
		name, subtypes = split_attribute_name(key)
		name = schema.canonical_name(name)
		if not isinstance(values, list):
			values = [ values ]
		binary = schema.is_binary(name) or BINARY_OPTION in subtypes
		values = [ decode_value(i, binary) for i in values ]
		nest_subtypes(subtypes, values, data.setdefault(name, []))
	return data

def plain_values(values):
	"""
	Returns the values which carry no subtype.
	"""
	return [ i for i in values if not isinstance(i, dict) ]
