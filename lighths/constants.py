
key_len = 16 # (aes128 CTR IV=0)
hash_len = 20 # (sha1)

# rend-spec-v2 1.3. Time periods and replicas
rotation_period = 86400
replicas = 2
spread = 3 # (consecutive HSDirs per replica)

service_id_len = 10
cookie_len = 20

hsdir_flag = 'HSDir'
directory_host = 'dirreq'

# (seconds) directory stream opening and answer waits
wait_timeout = 1

# tor-spec 0.3. Ciphers
pk_enc_len = 128
pk_pad_len = 42

class dh:
    # RFC2409 section 6.2 (Oakley group 2)
    p = int(
        'FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1'
        '29024E088A67CC74020BBEA63B139B22514A08798E3404DD'
        'EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245'
        'E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED'
        'EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE65381'
        'FFFFFFFFFFFFFFFF', 16)
    g = 2
    width = 128 # (bytes)
