"""
A small subset of the core, cosine, nis and inetorgperson schemas, which can
be published by the LdapStubber.
"""

ATTRIBUTE_TYPES = [
	"( 2.5.4.0 NAME 'objectClass' EQUALITY objectIdentifierMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.38 )",
	"( 2.5.4.41 NAME 'name' EQUALITY caseIgnoreMatch "
		"SUBSTR caseIgnoreSubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.15{32768} )",
	"( 2.5.4.3 NAME ( 'cn' 'commonName' ) SUP name )",
	"( 2.5.4.4 NAME ( 'sn' 'surname' ) SUP name )",
	"( 2.5.4.42 NAME ( 'givenName' 'gn' ) SUP name )",
	"( 2.5.4.11 NAME ( 'ou' 'organizationalUnitName' ) SUP name )",
	"( 2.5.4.13 NAME 'description' EQUALITY caseIgnoreMatch "
		"SUBSTR caseIgnoreSubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.15{1024} )",
	"( 2.5.4.20 NAME 'telephoneNumber' EQUALITY telephoneNumberMatch "
		"SUBSTR telephoneNumberSubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.50{32} )",
	"( 2.5.4.35 NAME 'userPassword' EQUALITY octetStringMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.40{128} )",
	"( 2.5.4.36 NAME 'userCertificate' EQUALITY certificateExactMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.8 )",
	"( 0.9.2342.19200300.100.1.1 NAME ( 'uid' 'userid' ) "
		"EQUALITY caseIgnoreMatch SUBSTR caseIgnoreSubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.15{256} )",
	"( 0.9.2342.19200300.100.1.3 NAME ( 'mail' 'rfc822Mailbox' ) "
		"EQUALITY caseIgnoreIA5Match SUBSTR caseIgnoreIA5SubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.26{256} )",
	"( 0.9.2342.19200300.100.1.9 NAME 'host' EQUALITY caseIgnoreMatch "
		"SUBSTR caseIgnoreSubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.15{256} )",
	"( 0.9.2342.19200300.100.1.60 NAME 'jpegPhoto' "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.28 )",
	"( 2.16.840.1.113730.3.1.241 NAME 'displayName' "
		"EQUALITY caseIgnoreMatch SUBSTR caseIgnoreSubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.15 SINGLE-VALUE )",
	"( 1.3.6.1.1.1.1.0 NAME 'uidNumber' EQUALITY integerMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.27 SINGLE-VALUE )",
	"( 1.3.6.1.1.1.1.1 NAME 'gidNumber' EQUALITY integerMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.27 SINGLE-VALUE )",
	"( 1.3.6.1.1.1.1.3 NAME 'homeDirectory' EQUALITY caseExactIA5Match "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.26 SINGLE-VALUE )",
	"( 1.3.6.1.1.1.1.4 NAME 'loginShell' EQUALITY caseExactIA5Match "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.26 SINGLE-VALUE )",
	"( 1.3.6.1.1.1.1.12 NAME 'memberUid' EQUALITY caseExactIA5Match "
		"SUBSTR caseExactIA5SubstringsMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.26 )",
	"( 2.5.18.1 NAME 'createTimestamp' EQUALITY generalizedTimeMatch "
		"ORDERING generalizedTimeOrderingMatch "
		"SYNTAX 1.3.6.1.4.1.1466.115.121.1.24 SINGLE-VALUE "
		"NO-USER-MODIFICATION USAGE directoryOperation )",
]

OBJECT_CLASSES = [
	"( 2.5.6.0 NAME 'top' ABSTRACT MUST objectClass )",
	"( 2.5.6.5 NAME 'organizationalUnit' SUP top STRUCTURAL MUST ou "
		"MAY description )",
	"( 2.5.6.6 NAME 'person' SUP top STRUCTURAL MUST ( sn $ cn ) "
		"MAY ( userPassword $ telephoneNumber $ description ) )",
	"( 2.5.6.7 NAME 'organizationalPerson' SUP person STRUCTURAL "
		"MAY ou )",
	"( 2.16.840.1.113730.3.2.2 NAME 'inetOrgPerson' "
		"SUP organizationalPerson STRUCTURAL "
		"MAY ( uid $ mail $ givenName $ displayName $ jpegPhoto $ "
		"userCertificate ) )",
	"( 0.9.2342.19200300.100.4.5 NAME 'account' SUP top STRUCTURAL "
		"MUST uid MAY ( description $ ou $ host ) )",
	"( 1.3.6.1.1.1.2.0 NAME 'posixAccount' SUP top AUXILIARY "
		"MUST ( cn $ uid $ uidNumber $ gidNumber $ homeDirectory ) "
		"MAY ( userPassword $ loginShell $ description ) )",
	"( 1.3.6.1.1.1.2.2 NAME 'posixGroup' SUP top STRUCTURAL "
		"MUST ( cn $ gidNumber ) "
		"MAY ( userPassword $ memberUid $ description ) )",
]

CORE_SCHEMA = {
	'attributeTypes': ATTRIBUTE_TYPES,
	'objectClasses': OBJECT_CLASSES,
}
