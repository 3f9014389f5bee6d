from resultset.options import iterdict_data_loader

from libb import Setting

Setting.unlock()

postgresql = Setting()
postgresql.drivername='postgresql'
postgresql.hostname='localhost'
postgresql.username='postgres'
postgresql.password='postgres'
postgresql.database='test_db'
postgresql.port=5432
postgresql.timeout=30
postgresql.data_loader=iterdict_data_loader

sqlite = Setting()
sqlite.drivername='sqlite'
sqlite.database=':memory:'
sqlite.data_loader=iterdict_data_loader

Setting.lock()
