# Módulo models: tabelas SQLModel e modelos de entrada/saída da API
# A ordem das importações importa para a criação das tabelas
# Tabelas com chaves estrangeiras vêm depois das tabelas que referenciam

from .admin import Admin
from .client import Client, ClientCreate, ClientUpdate, ClientRead
from .abastecedor import Abastecedor, AbastecedorCreate, AbastecedorUpdate, AbastecedorRead
from .driver import Driver, DriverCreate, DriverUpdate, DriverRead, DriverProfileRead
from .freight import Freight, FreightCreate, FreightUpdate, FreightRead, RecordStatus
from .abastecimento import Abastecimento, AbastecimentoCreate, AbastecimentoUpdate, AbastecimentoRead
from .outros_insumo import OutrosInsumo, OutrosInsumoCreate, OutrosInsumoUpdate, OutrosInsumoRead
from .payment import Payment, PaymentRead
from .comprovante import ComprovanteCarga, ComprovanteDescarga, ComprovanteAbastecimento, ComprovanteRead
from .driver_location import DriverLocation, DriverLocationUpdate
