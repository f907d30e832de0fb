import unittest

import ldap

from ldap_mapping.ldap_stubber import LdapStubber, CORE_SCHEMA

def new_element(dict={}, add_form=True):
	default = {
		'cn':    'item',
		'attr1': 'val1',
		'attr2': 'val2',
	}
	default.update(dict)
	items = [ (key, default[key]) for key in default ]
	if add_form:
		return items
	return [ ( ldap.MOD_REPLACE, i[0], i[1] ) for i in items ]


class AddingElements(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.stubber.add_s('ou=schule,o=lestwo', new_element())

	def test_should_have_a_collection_of_size1(self):
		self.assertEqual(len(self.stubber.elements), 1)
	def test_should_have_attr1(self):
		self.assertEqual(self.stubber.elements[0].attr1, [ b'val1' ])
	def test_should_have_a_dn(self):
		self.assertEqual(self.stubber.elements[0].dn, 'ou=schule,o=lestwo')
	def test_should_refuse_the_same_dn_twice(self):
		self.assertRaises(
			ldap.ALREADY_EXISTS,
			self.stubber.add_s, 'OU=schule,o=lestwo', new_element()
		)

class ModifyingAnExistingElement(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.dn = 'ou=schule,o=lestwo'
		self.stubber.add_s(self.dn, new_element())
		self.stubber.modify_s(self.dn, new_element(add_form=False, dict={
			'attr3': 'newval',
			'attr1': [ 'val5', 'val4' ]
		}))
		self.element = self.stubber.elements[0]

	def test_should_add_the_new_attribute(self):
		self.assertEqual(self.element.attr3, [ b'newval' ])
	def test_should_alter_the_attr1(self):
		self.assertEqual(self.element.attr1, [ b'val5', b'val4' ])

class ModifyingAnNonExistingElement(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.cmd = lambda: self.stubber.modify_s('ou=schule,o=lestwo',
			new_element(add_form=False, dict={ 'attr3': 'newval' })
		)

	def test_should_raise_error(self):
		self.assertRaises(ldap.NO_SUCH_OBJECT, self.cmd)

class DeletingAnExistingElement(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.dn = 'ou=schule,o=lestwo'
		self.stubber.add_s(self.dn, new_element())
		self.stubber.delete_s(self.dn)
	def test_should_delete_the_element(self):
		self.assertEqual(len(self.stubber.elements), 0)

class DeletingAnNonExistingElement(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.cmd = lambda: self.stubber.delete_s('ou=schule,o=lestwo')
	def test_should_raise_error(self):
		self.assertRaises(ldap.NO_SUCH_OBJECT, self.cmd)

class ModifyingTheDN(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.stubber.add_s('cn=item,o=lestwo', new_element())
		self.stubber.add_s('cn=other,o=lestwo', new_element({ 'cn': 'other' }))
		self.stubber.modrdn_s('cn=item,o=lestwo', 'cn=newitem', True)
	def test_should_change_the_dn(self):
		self.assertEqual(self.stubber.elements[0].dn, 'cn=newitem,o=lestwo')
	def test_should_replace_the_rdn_value(self):
		self.assertEqual(self.stubber.elements[0].cn, [ b'newitem' ])
	def test_should_refuse_an_existing_dn(self):
		self.assertRaises(
			ldap.ALREADY_EXISTS,
			self.stubber.modrdn_s, 'cn=newitem,o=lestwo', 'cn=other', True
		)

class SearchingExistingElements(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber()
		self.dn = 'ou=schule,o=lestwo'
		self.dn2 = 'ou=newschule,o=lestwo'
		self.stubber.add_s(self.dn, new_element())
		self.stubber.add_s(self.dn2, new_element(
			dict={ 'attr1': 'val2' })
		)

	def test_should_return_the_correct_result(self):
		self.assertEqual(self.stubber.search_s(
			'o=lestwo',
			ldap.SCOPE_SUBTREE,
			'(attr1=val1)'
		), [
			('ou=schule,o=lestwo', {
				'cn':    [ b'item' ],
				'attr1': [ b'val1' ],
				'attr2': [ b'val2' ],
			})
		])

	def test_should_return_only_the_requested_attributes(self):
		self.assertEqual(self.stubber.search_s(
			'o=lestwo',
			ldap.SCOPE_ONELEVEL,
			'(attr1=val2)',
			['cn']
		), [ ('ou=newschule,o=lestwo', { 'cn': [ b'item' ] }) ])

	def test_should_return_nothing_for_missing_attributes(self):
		self.assertEqual(self.stubber.search_s(
			'o=lestwo',
			ldap.SCOPE_SUBTREE,
			'(attr5=val1)'
		), [ ])

	def test_should_raise_for_a_missing_base_entry(self):
		self.assertRaises(
			ldap.NO_SUCH_OBJECT,
			self.stubber.search_s, 'ou=missing,o=lestwo', ldap.SCOPE_BASE
		)

class AStubberWithASchema(unittest.TestCase):
	def setUp(self):
		self.stubber = LdapStubber(schema=CORE_SCHEMA)

	def test_should_publish_the_subschema_entry_in_the_root_dse(self):
		self.assertEqual(self.stubber.search_s(
			'', ldap.SCOPE_BASE, '(objectClass=*)', ['subschemaSubentry']
		), [ ('', { 'subschemaSubentry': [ b'cn=Subschema' ] }) ])

	def test_should_publish_the_object_classes(self):
		dn, attrs = self.stubber.search_s(
			'cn=Subschema', ldap.SCOPE_BASE, '(objectClass=subschema)',
			['objectClasses']
		)[0]
		self.assertEqual(
			len(attrs['objectClasses']), len(CORE_SCHEMA['objectClasses'])
		)

if __name__ == '__main__':
	unittest.main()
