from .ldap_stubber import LdapStubber, LdapElement
from .core_schema import CORE_SCHEMA
