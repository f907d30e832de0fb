"""
An in-memory directory with the call-interface of a python-ldap connection.
It is used by the tests of the mapper and can be assigned to the connection
of the mapped classes in the tests of applications:

	Base.connection = LdapStubber(schema=CORE_SCHEMA)
"""
import re

import ldap
import ldap.cidict
import ldap.dn

SUBSCHEMA_DN = 'cn=Subschema'

ESCAPED = re.compile(rb'\\([0-9a-fA-F]{2})')

def parse_expression(string):
	"""
	Splits a string like '(a=b)(|(c=d)(e=f))' into its top-level
	()-expressions.
	"""
	stack = 0
	lists = []
	start = -1
	for i, elem in enumerate(string):
		if elem == '(' and stack == 0:
			start = i
		if elem == ')' and stack == 1:
			lists.append(string[start:i+1])
		if elem == '(':
			stack = stack + 1
		if elem == ')':
			stack = stack - 1
	if stack != 0:
		raise ldap.FILTER_ERROR({'desc': 'Bad search filter: %s' % string})
	return lists

def to_bytes(value):
	if isinstance(value, str):
		return value.encode('utf-8')
	return value

def unescape(value):
	"""
	Decodes the \\XX-escapes of a filter assertion value.
	"""
	return ESCAPED.sub(lambda m: bytes([int(m.group(1), 16)]), value)

def normalize_dn(dn):
	"""
	Returns the DN in a form which can be compared.
	"""
	if not dn:
		return ''
	return ldap.dn.dn2str(ldap.dn.str2dn(dn)).lower()

def parent_dn(dn):
	rdns = ldap.dn.str2dn(dn)
	return ldap.dn.dn2str(rdns[1:])


class LdapElement(object):
	"""
	This class represents an element within the directory
	"""

	def __init__(self, dn, attrs):
		"""
		Constructor.

		dn -- the distinguished name for the element
		attrs -- a list of tuples or a dictionary with the attributes and
				 their values
		"""
		self.dn = dn
		self.attributes = ldap.cidict.cidict()
		if isinstance(attrs, dict):
			attrs = attrs.items()
		for attr, value in attrs:
			self.attributes[attr] = self._values(value)

	def __repr__(self):
		return '<LdapElement %s>' % self.dn

	def __getattr__(self, name):
		if name == 'attributes':
			raise AttributeError(name)
		try:
			return self.attributes[name]
		except KeyError:
			raise AttributeError(name)

	def modify(self, attrs):
		"""
		Modifies the element

		attrs -- a list of (operation, attribute, values)-tuples
		"""
		for op, attr, val in attrs:
			self.operation_mappings[op](self, attr, self._values(val))

	def modrdn(self, rdn, delold=True):
		"""
		Modifies the RDN of the element

		rdn -- the new relative distinguished name
		delold -- if true the old RDN-value is removed from the attribute
		"""
		(old_attr, old_val, _), = ldap.dn.str2dn(self.dn)[0]
		(attr, val, _), = ldap.dn.str2dn(rdn)[0]
		if delold and old_attr in self.attributes:
			self._delete(old_attr, [ to_bytes(old_val) ])
		self._add(attr, [ to_bytes(val) ])
		parent = parent_dn(self.dn)
		self.dn = parent and '%s,%s' % (rdn, parent) or rdn

	def matches(self, filter):
		"""
		Returns true if the element matches the given filter

		filter -- a LDAP-Filter expression
		"""
		filter = filter.strip()
		if not (filter.startswith('(') and filter.endswith(')')):
			filter = '(%s)' % filter
		inner = filter[1:-1]
		if inner[:1] == '&':
			return all(self.matches(i) for i in parse_expression(inner[1:]))
		if inner[:1] == '|':
			return any(self.matches(i) for i in parse_expression(inner[1:]))
		if inner[:1] == '!':
			return not self.matches(inner[1:])
		return self._handle_attribute(inner)

	def has_prefix(self, prefix, scope=ldap.SCOPE_SUBTREE):
		"""
		Returns true if the element is within the given search-base and scope
		"""
		dn = normalize_dn(self.dn)
		prefix = normalize_dn(prefix)
		if scope == ldap.SCOPE_BASE:
			return dn == prefix
		if scope == ldap.SCOPE_ONELEVEL:
			return bool(dn) and normalize_dn(parent_dn(self.dn)) == prefix
		if not prefix:
			return True
		return dn == prefix or dn.endswith(',' + prefix)

	def to_result(self, attrlist=None):
		"""
		Converts the object back to a ldap-result
		"""
		return ( self.dn, self._result_dict(attrlist) )

	###########################################################################
	# Helper methods
	###########################################################################
	def _result_dict(self, attrlist=None):
		wanted = None
		if attrlist:
			wanted = set(i.lower() for i in attrlist)
		result = {}
		for attr, values in self.attributes.items():
			name = attr.split(';')[0].lower()
			if wanted is None or name in wanted or '*' in wanted:
				result[attr] = list(values)
		return result

	def _values(self, val):
		if val is None:
			return []
		if not isinstance(val, (list, tuple)):
			val = [ val ]
		return [ to_bytes(i) for i in val ]

	def _handle_attribute(self, match):
		"""
		Handles regular filter expressions like attr1=value.
		"""
		attr, sep, val = match.partition('=')
		if not sep:
			raise ldap.FILTER_ERROR({'desc': 'Bad search filter: %s' % match})
		op = '='
		if attr[-1:] in ('>', '<', '~'):
			op = attr[-1] + '='
			attr = attr[:-1]
		values = self.attributes.get(attr.strip(), [])
		val = to_bytes(val)
		if op == '=' and val == b'*':
			return len(values) > 0
		if op == '=' and b'*' in val:
			pattern = b'.*'.join(
				re.escape(unescape(i)) for i in val.split(b'*')
			)
			regex = re.compile(pattern + b'$', re.IGNORECASE | re.DOTALL)
			return any(regex.match(i) for i in values)
		val = unescape(val).lower()
		if op == '>=':
			return any(i.lower() >= val for i in values)
		if op == '<=':
			return any(i.lower() <= val for i in values)
		return val in [ i.lower() for i in values ]

	def _add(self, attr, val):
		"""
		Adds new values to the attribute
		"""
		values = self.attributes.get(attr, [])
		for i in val:
			if i in values:
				raise ldap.TYPE_OR_VALUE_EXISTS({'desc': attr})
		self.attributes[attr] = values + val

	def _delete(self, attr, val):
		"""
		Deletes the given values, or the whole attribute if no values are
		given.
		"""
		if attr not in self.attributes:
			raise ldap.NO_SUCH_ATTRIBUTE({'desc': attr})
		if not val:
			del self.attributes[attr]
			return
		values = [ i for i in self.attributes[attr] if i not in val ]
		if values:
			self.attributes[attr] = values
		else:
			del self.attributes[attr]

	def _replace(self, attr, val):
		"""
		Replaces the entire values of the given attribute with the new values
		"""
		if val:
			self.attributes[attr] = val
		elif attr in self.attributes:
			del self.attributes[attr]

	operation_mappings = {
		ldap.MOD_REPLACE: _replace,
		ldap.MOD_ADD: _add,
		ldap.MOD_DELETE: _delete,
	}


class LdapStubber(object):
	"""
	This class is a helper for stubbing the ldap-object
	"""

	def __init__(self, schema=None):
		"""
		schema -- an optional dictionary with the attributeTypes and the
				  objectClasses which are published as subschema entry
		"""
		self.elements = []
		self.bound_as = None
		if schema is not None:
			self.add_s('', [
				('objectClass', [ 'top' ]),
				('subschemaSubentry', [ SUBSCHEMA_DN ]),
			])
			attrs = [ ('objectClass', [ 'top', 'subschema' ]) ]
			attrs.extend(schema.items())
			self.add_s(SUBSCHEMA_DN, attrs)

	def simple_bind_s(self, who='', cred=''):
		self.bound_as = who
		return (ldap.RES_BIND, [], 1, [])

	def unbind_s(self):
		self.bound_as = None

	def add_s(self, dn, attrs):
		"""
		Adds a new element to the Directory

		dn -- The DN for the element which should be added
		attrs -- The attributes which should be added
		"""
		if self._lookup(dn) is not None:
			raise ldap.ALREADY_EXISTS({'desc': 'Already exists', 'matched': dn})
		self.elements.append(LdapElement(dn, attrs))

	def modify_s(self, dn, attrs):
		"""
		Modifies an ldap object

		dn -- the DN of the object
		attrs -- The modification list
		"""
		self._find_element(dn).modify(attrs)

	def delete_s(self, dn):
		"""
		Deletes the element with the given dn from the directory
		"""
		self.elements.remove(self._find_element(dn))

	def modrdn_s(self, dn, newrdn, delold=1):
		"""
		Modifies the RDN of the element.

		dn -- the full distinguished name of the element
		newrdn -- the new RDN of the element
		delold -- true if the old RDN-value should be removed
		"""
		element = self._find_element(dn)
		new_dn = newrdn
		if parent_dn(dn):
			new_dn = '%s,%s' % (newrdn, parent_dn(dn))
		if self._lookup(new_dn) is not None:
			raise ldap.ALREADY_EXISTS({'desc': 'Already exists', 'matched': new_dn})
		element.modrdn(newrdn, bool(delold))

	def search_s(self, base, scope, filterstr='(objectClass=*)', attrlist=None,
				 attrsonly=0):
		if scope == ldap.SCOPE_BASE and self._lookup(base) is None:
			raise ldap.NO_SUCH_OBJECT({'desc': 'No such object', 'matched': base})
		result = [ i for i in self.elements if i.has_prefix(base, scope) ]
		result = [ i for i in result if i.matches(filterstr) ]
		return [ i.to_result(attrlist) for i in result ]

	###########################################################################
	# Helper methods
	###########################################################################
	def _lookup(self, dn):
		dn = normalize_dn(dn)
		for element in self.elements:
			if normalize_dn(element.dn) == dn:
				return element
		return None

	def _find_element(self, dn):
		"""
		Finds the element with the given DN and returns it. If no element was
		found ldap.NO_SUCH_OBJECT is risen.
		"""
		element = self._lookup(dn)
		if element is None:
			raise ldap.NO_SUCH_OBJECT({'desc': 'No such object', 'matched': dn})
		return element
